from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
IssuanceMode = Literal["inline", "queue"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    issuance_mode: IssuanceMode = "inline"
    module_completion_xp: int = 100
    course_completion_xp: int = 500
    # Attendance is filed under the local date and weekday of this zone.
    attendance_timezone: str = "UTC"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def attendance_tz(self) -> ZoneInfo:
        return ZoneInfo(self.attendance_timezone)

    @property
    def queues_issuance(self) -> bool:
        return self.issuance_mode == "queue"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    issuance_mode_raw = _getenv("ISSUANCE_MODE", "inline").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if issuance_mode_raw not in ("inline", "queue"):
        raise ValueError(
            f"ISSUANCE_MODE must be inline|queue (got {issuance_mode_raw!r})"
        )

    port = _getint("PORT", 8000)
    module_xp = _getint("MODULE_COMPLETION_XP", 100)
    course_xp = _getint("COURSE_COMPLETION_XP", 500)
    if module_xp < 0 or course_xp < 0:
        raise ValueError("XP awards must be non-negative")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    attendance_timezone = _getenv("ATTENDANCE_TIMEZONE", "UTC")
    try:
        ZoneInfo(attendance_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"ATTENDANCE_TIMEZONE must be an IANA zone name (got {attendance_timezone!r})"
        ) from None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        issuance_mode=issuance_mode_raw,
        module_completion_xp=module_xp,
        course_completion_xp=course_xp,
        attendance_timezone=attendance_timezone,
    )


SETTINGS = load_settings()

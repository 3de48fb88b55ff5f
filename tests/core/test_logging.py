from __future__ import annotations

import json
import logging

from lms.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", lineno: int = 1) -> logging.LogRecord:
    return logging.LogRecord(
        name="lms.test",
        level=level,
        pathname="svc.py",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_third_parties_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_setup_logging_installs_json_formatter() -> None:
    setup_logging("info", json_format=True)
    (handler,) = logging.getLogger().handlers
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


def test_container_formatter_location_only_for_warnings() -> None:
    fmt = _ContainerFormatter()
    assert "[svc.py:" not in fmt.format(_record(logging.INFO))
    assert "[svc.py:42]" in fmt.format(_record(logging.WARNING, lineno=42))


def test_json_formatter_promotes_pipeline_context() -> None:
    record = _record(msg="Issued module certificate")
    record.request_id = "req-1"  # type: ignore[attr-defined]
    record.student_id = "s-1"  # type: ignore[attr-defined]
    record.enrollment_id = "e-1"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["message"] == "Issued module certificate"
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "lms.test"
    assert parsed["request_id"] == "req-1"
    assert parsed["student_id"] == "s-1"
    assert parsed["enrollment_id"] == "e-1"
    assert "session_id" not in parsed


def test_json_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("xp ledger unavailable")
    except RuntimeError:
        import sys

        record = logging.LogRecord(
            name="lms.test",
            level=logging.ERROR,
            pathname="svc.py",
            lineno=1,
            msg="XP award failed",
            args=(),
            exc_info=sys.exc_info(),
        )
    parsed = json.loads(_JsonFormatter().format(record))
    assert "xp ledger unavailable" in parsed["exception"]

"""Health and readiness endpoints.

  /health (liveness):  is the process up?  Always 200; the body reports
                       the state of each backing service.
  /ready (readiness):  can this instance take traffic?  503 when the
                       database is configured but unreachable.  Redis is
                       not critical: the cache falls back to recomputing
                       and inline issuance does not need the queue.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from lms.core.config import SETTINGS
from lms.db.engine import engine
from lms.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return "ok"
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "issuance_mode": SETTINGS.issuance_mode,
    }


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)

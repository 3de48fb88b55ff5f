"""Read-through cache for progress queries.

Class and student progress are recomputed from completion rows, which
means one catalog read plus one completion scan per request.  Dashboards
poll these endpoints, so results are cached per enrollment:

  progress:{enrollment_id}:class:{...}
  progress:{enrollment_id}:student:{student_id}:{...}

Two mechanisms keep entries fresh:
  1. TTL on every entry, so a missed invalidation heals itself.
  2. complete_session deletes progress:{enrollment_id}:* after it has
     written completions for that enrollment.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from lms.core.metrics import CACHE_OPERATIONS
from lms.db.redis import redis_pool

logger = logging.getLogger(__name__)

PROGRESS_CACHE_TTL = 300


def progress_prefix(enrollment_id) -> str:
    return f"progress:{enrollment_id}:"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None: ...
    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a glob such as 'progress:<id>:*'."""
        ...


class InMemoryCacheService:
    """Dict-backed cache.  TTL is accepted but not enforced."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        value = self._store.get(key)
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]
        CACHE_OPERATIONS.labels(operation="invalidate").inc()

    def keys(self) -> list[str]:
        return list(self._store)


class RedisCacheService:
    """Redis-backed cache shared by all API instances."""

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        value = await self._redis.get(f"{self._PREFIX}{key}")
        CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN, not KEYS: KEYS blocks the server for the whole keyspace walk.
        cursor = 0
        deleted = 0
        while True:
            cursor, keys = await self._redis.scan(
                cursor, match=f"{self._PREFIX}{pattern}", count=100
            )
            if keys:
                deleted += await self._redis.delete(*keys)
            if cursor == 0:
                break
        CACHE_OPERATIONS.labels(operation="invalidate").inc()
        logger.debug("Invalidated %d cache keys matching %s", deleted, pattern)


async def invalidate_progress(enrollment_id) -> None:
    """Drop every cached progress view for one enrollment.

    Cache trouble must never fail a completion that is already stored,
    so errors are logged and swallowed here.
    """
    try:
        await cache_service.delete_pattern(f"{progress_prefix(enrollment_id)}*")
    except Exception:
        logger.exception("Progress cache invalidation failed enrollment=%s", enrollment_id)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()

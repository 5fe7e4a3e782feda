"""Read-through cache for rendered dashboards.

Student dashboards are cached per user as JSON for DASHBOARD_CACHE_TTL
seconds.  A successful progress update deletes the student's entry, so
the next read recomputes it; the TTL bounds staleness for changes that
arrive through other paths (grading, roster edits).

With REDIS_URL set the cache is shared across instances; otherwise each
process keeps its own in-memory copy.  A Redis failure never fails the
request: reads fall through to a fresh computation and a failed delete
is logged and left to the TTL.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

from learnstats.core.metrics import DASHBOARD_CACHE_OPERATIONS

logger = logging.getLogger(__name__)


def student_dashboard_key(user_id: str) -> str:
    return f"dashboard:student:{user_id}"


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...


class InMemoryCacheService:
    """Process-local cache with TTL checked on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[str, float]] = {}
        self._clock = clock

    async def get(self, key: str) -> str | None:
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache shared across API instances."""

    _PREFIX = "learnstats:cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


def build_cache_service(redis_client=None) -> CacheService:
    if redis_client is not None:
        return RedisCacheService(redis_client)
    return InMemoryCacheService()


def _cache_error(action: str, key: str, exc: RedisError) -> None:
    DASHBOARD_CACHE_OPERATIONS.labels(operation="error").inc()
    logger.warning("Dashboard cache %s failed  key=%s error=%s", action, key, exc)


async def read_through(
    cache: CacheService,
    key: str,
    ttl_seconds: int,
    compute: Callable[[], str],
) -> str:
    """Return the cached value for ``key``, computing and storing it on a miss.

    ``compute`` is synchronous store work and runs in the threadpool.
    A TTL of 0 disables caching.
    """
    if ttl_seconds <= 0:
        return await run_in_threadpool(compute)

    try:
        cached = await cache.get(key)
    except RedisError as exc:
        _cache_error("read", key, exc)
        return await run_in_threadpool(compute)

    if cached is not None:
        DASHBOARD_CACHE_OPERATIONS.labels(operation="hit").inc()
        return cached

    DASHBOARD_CACHE_OPERATIONS.labels(operation="miss").inc()
    value = await run_in_threadpool(compute)
    try:
        await cache.set(key, value, ttl_seconds)
    except RedisError as exc:
        _cache_error("write", key, exc)
    return value


async def invalidate(cache: CacheService, key: str) -> None:
    DASHBOARD_CACHE_OPERATIONS.labels(operation="invalidate").inc()
    try:
        await cache.delete(key)
    except RedisError as exc:
        _cache_error("delete", key, exc)

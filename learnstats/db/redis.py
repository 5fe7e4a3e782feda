"""Redis connection management.

REDIS_URL set: a pooled async client backs the dashboard cache and is
checked by /health.  Unset: no client is created and the cache stays in
process memory.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str | None) -> aioredis.Redis | None:
    if not redis_url:
        return None
    return aioredis.from_url(
        redis_url,
        decode_responses=True,
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(client: aioredis.Redis | None) -> AsyncIterator[None]:
    """Verify connectivity on startup and close the pool on shutdown.

    An unreachable server is logged and startup continues; /health reports
    redis as degraded until it answers.
    """
    if client is None:
        logger.info("No REDIS_URL configured; dashboard cache is in-process")
        yield
        return

    try:
        await client.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except aioredis.RedisError:
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")

"""Redis client for shared rate-limit buckets.

Only the rate limiter uses Redis.  With REDIS_URL unset `redis_pool` is
None and each process keeps its own buckets in memory.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

import redis.asyncio as aioredis

from instructor_analytics.core.config import SETTINGS

logger = logging.getLogger(__name__)

redis_pool: aioredis.Redis | None = (
    aioredis.from_url(
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
        socket_timeout=1.0,  # a slow Redis must not stall analytics requests
    )
    if SETTINGS.redis_url
    else None
)


def _display_url(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.hostname}:{parts.port or 6379}{parts.path}"


async def ping_redis() -> None:
    if redis_pool is None:
        raise RuntimeError("REDIS_URL is not configured")
    await redis_pool.ping()  # type: ignore[misc]


@asynccontextmanager
async def lifespan_redis() -> AsyncIterator[None]:
    if redis_pool is None:
        logger.info("REDIS_URL not set; rate limit buckets are per-process")
        yield
        return

    try:
        await ping_redis()
        logger.info("Redis reachable at %s", _display_url(SETTINGS.redis_url or ""))
    except Exception:
        # Keep serving; /health reports redis as degraded.
        logger.exception("Redis unreachable on startup")
    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")

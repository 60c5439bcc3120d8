"""Health and readiness endpoints.

  /health (liveness): the process answers, plus the state of each backing
    service.  Always 200; `status` is "degraded" when a configured
    dependency does not respond.  A 503 here would get the container
    restarted, which does not fix a database outage.

  /ready (readiness): 503 when the configured database is unreachable.
    Analytics cannot answer anything without its record store, so the
    load balancer should stop routing here until it comes back.  Redis
    only backs rate limiting and does not affect readiness.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Response, status

from instructor_analytics.db import engine as db
from instructor_analytics.db.redis import ping_redis, redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

PING_TIMEOUT_SECONDS = 2.0


async def _check(
    name: str, configured: bool, ping: Callable[[], Awaitable[None]]
) -> str:
    if not configured:
        return "not_configured"
    try:
        async with asyncio.timeout(PING_TIMEOUT_SECONDS):
            await ping()
    except Exception:
        logger.warning("%s health check failed", name, exc_info=True)
        return "degraded"
    return "ok"


async def _check_database() -> str:
    return await _check("database", db.engine is not None, db.ping_database)


async def _check_redis() -> str:
    return await _check("redis", redis_pool is not None, ping_redis)


@router.get("/health")
async def health() -> dict:
    database, redis = await asyncio.gather(_check_database(), _check_redis())
    checks = {"database": database, "redis": redis}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)

"""Per-instructor rate limiting for the analytics routes.

The limiter keys on the instructor id from the verified token, so it runs
after authentication: a request with a bad or missing token is rejected
with 401/403 and never spends a token, and a forged token cannot drain
someone else's bucket.  /health, /ready and /metrics do not declare the
dependency and are never limited.

Allowed responses carry X-RateLimit-Limit and X-RateLimit-Remaining;
429s add Retry-After in whole seconds.
"""

from __future__ import annotations

import logging
import math
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Response, status

from instructor_analytics.api.dependencies import current_instructor_id
from instructor_analytics.core.metrics import RATE_LIMIT_HITS
from instructor_analytics.db.redis import redis_pool
from instructor_analytics.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

rate_limiter: RateLimiter = (
    RedisRateLimiter(redis_pool) if redis_pool is not None else InMemoryRateLimiter()
)


def require_rate_limit(config: RateLimitConfig | None = None):
    """Dependency factory; one bucket per instructor per process or Redis."""
    config = config or RateLimitConfig()

    async def _check(
        instructor_id: Annotated[UUID, Depends(current_instructor_id)],
        response: Response,
    ) -> None:
        result = await rate_limiter.check(str(instructor_id), config)
        if not result.allowed:
            RATE_LIMIT_HITS.inc()
            logger.warning(
                "Rate limited instructor=%s retry_after=%.1fs",
                instructor_id,
                result.retry_after,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers={
                    "Retry-After": str(max(1, math.ceil(result.retry_after))),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    return _check

"""Token bucket rate limiting for the analytics routes.

Each caller owns a bucket of `capacity` tokens refilled at `refill_rate`
tokens per second; a request spends one.  An instructor dashboard fires
its panels together, so the burst has to fit, while the refill rate caps
how many aggregations one caller can force per minute.

`spend` holds the bucket arithmetic.  The in-memory backend calls it
directly; the Redis backend runs the same steps inside a Lua script so
every replica draws from one bucket per caller.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Burst of 30, then one request every two seconds."""

    capacity: int = 30
    refill_rate: float = 0.5


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    retry_after: float  # seconds until one token is available; 0 if allowed


@dataclass(frozen=True, slots=True)
class Bucket:
    tokens: float
    updated_at: float


def spend(
    bucket: Bucket | None, now: float, config: RateLimitConfig
) -> tuple[Bucket, RateLimitResult]:
    """Refill `bucket` up to `now`, then try to take one token."""
    if bucket is None:
        tokens = float(config.capacity)
    else:
        elapsed = max(0.0, now - bucket.updated_at)
        tokens = min(config.capacity, bucket.tokens + elapsed * config.refill_rate)

    if tokens >= 1:
        tokens -= 1
        result = RateLimitResult(
            allowed=True,
            remaining=math.floor(tokens),
            limit=config.capacity,
            retry_after=0.0,
        )
    else:
        result = RateLimitResult(
            allowed=False,
            remaining=0,
            limit=config.capacity,
            retry_after=(1 - tokens) / config.refill_rate,
        )
    return Bucket(tokens=tokens, updated_at=now), result


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...


class InMemoryRateLimiter:
    """Buckets in a dict.  Each process, and so each replica, has its own."""

    def __init__(self) -> None:
        self._buckets: dict[str, Bucket] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        bucket, result = spend(self._buckets.get(key), time.monotonic(), config)
        self._buckets[key] = bucket
        return result

    def clear(self) -> None:
        self._buckets.clear()


# KEYS[1] bucket hash; ARGV capacity, refill_rate.
# The clock is Redis TIME so replicas with skewed clocks agree.
# Returns {allowed, remaining, retry_after_ms}.
_SPEND_LUA = """
local capacity = tonumber(ARGV[1])
local rate = tonumber(ARGV[2])
local t = redis.call('TIME')
local now = tonumber(t[1]) + tonumber(t[2]) / 1000000

local state = redis.call('HMGET', KEYS[1], 'tokens', 'updated_at')
local tokens = tonumber(state[1])
if tokens == nil then
    tokens = capacity
else
    local elapsed = math.max(0, now - tonumber(state[2]))
    tokens = math.min(capacity, tokens + elapsed * rate)
end

local allowed = 0
local retry_ms = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
else
    retry_ms = math.ceil((1 - tokens) / rate * 1000)
end

redis.call('HSET', KEYS[1], 'tokens', tostring(tokens), 'updated_at', tostring(now))
redis.call('EXPIRE', KEYS[1], math.ceil(capacity / rate) + 60)
return {allowed, math.floor(tokens), retry_ms}
"""


class RedisRateLimiter:
    """Shared buckets; refill and spend are one atomic script call."""

    KEY_PREFIX = "ratelimit:analytics:"

    def __init__(self, redis_client) -> None:
        self._script = redis_client.register_script(_SPEND_LUA)

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        allowed, remaining, retry_ms = await self._script(
            keys=[self.KEY_PREFIX + key],
            args=[config.capacity, config.refill_rate],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=0 if not allowed else int(remaining),
            limit=config.capacity,
            retry_after=int(retry_ms) / 1000,
        )

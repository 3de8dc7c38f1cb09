"""Token-bucket rate limiting.

Quiz clients autosave progress every few seconds and on every answer
click.  A bucket per user absorbs those bursts (capacity) while capping
the sustained write rate against the attempt store (refill_rate).

Backends follow the repo pattern: InMemoryRateLimiter for a single
process (dev/tests), RedisRateLimiter when several API instances must
share one bucket per user.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    retry_after: float  # seconds until the next token; 0 when allowed


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """capacity = burst size; refill_rate = tokens per second sustained."""

    capacity: int = 60
    refill_rate: float = 1.0


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...
    async def reset(self, key: str) -> None: ...


def _take(
    tokens: float, elapsed: float, config: RateLimitConfig
) -> tuple[float, RateLimitResult]:
    """Refill for ``elapsed`` seconds, then try to spend one token."""
    tokens = min(config.capacity, tokens + elapsed * config.refill_rate)
    if tokens >= 1:
        tokens -= 1
        return tokens, RateLimitResult(True, int(tokens), config.capacity, 0)
    retry_after = (1 - tokens) / config.refill_rate
    return tokens, RateLimitResult(False, 0, config.capacity, retry_after)


class InMemoryRateLimiter:
    """Per-process buckets; each API instance counts separately."""

    def __init__(self) -> None:
        # key -> (tokens_remaining, last_refill_monotonic)
        self._buckets: dict[str, tuple[float, float]] = {}

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()
        tokens, last_refill = self._buckets.get(key, (float(config.capacity), now))
        tokens, result = _take(tokens, now - last_refill, config)
        self._buckets[key] = (tokens, now)
        return result

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)


class RedisRateLimiter:
    """Shared buckets in Redis.

    Refill-and-spend is a read-modify-write, so it runs as one Lua script;
    Redis executes scripts atomically and concurrent requests for the same
    user cannot both spend the last token.
    """

    # KEYS[1] bucket key; ARGV: capacity, refill_rate, now (seconds)
    # Returns {allowed 0/1, remaining, retry_after_ms}
    _LUA_SCRIPT = """
    local capacity = tonumber(ARGV[1])
    local refill_rate = tonumber(ARGV[2])
    local now = tonumber(ARGV[3])
    local ttl = math.ceil(capacity / refill_rate) + 60

    local bucket = redis.call('HMGET', KEYS[1], 'tokens', 'last_refill')
    local tokens = tonumber(bucket[1]) or capacity
    local last_refill = tonumber(bucket[2]) or now

    tokens = math.min(capacity, tokens + (now - last_refill) * refill_rate)

    local allowed = 0
    local retry_after_ms = 0
    if tokens >= 1 then
        tokens = tokens - 1
        allowed = 1
    else
        retry_after_ms = math.ceil((1 - tokens) / refill_rate * 1000)
    end

    redis.call('HSET', KEYS[1], 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', KEYS[1], ttl)
    return {allowed, math.floor(tokens), retry_after_ms}
    """

    def __init__(self, redis_client) -> None:
        self._redis = redis_client
        self._script = redis_client.register_script(self._LUA_SCRIPT)

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        allowed, remaining, retry_after_ms = await self._script(
            keys=[f"ratelimit:{key}"],
            args=[config.capacity, config.refill_rate, time.time()],
        )
        return RateLimitResult(
            allowed=bool(allowed),
            remaining=int(remaining) if allowed else 0,
            limit=config.capacity,
            retry_after=retry_after_ms / 1000,
        )

    async def reset(self, key: str) -> None:
        await self._redis.delete(f"ratelimit:{key}")

from __future__ import annotations

import asyncio

from app.services.rate_limiter import InMemoryRateLimiter, RateLimitConfig, _take


def test_bucket_allows_burst_then_rejects() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(capacity=3, refill_rate=0.001)

    async def burst() -> list[bool]:
        return [(await limiter.check("k", config)).allowed for _ in range(4)]

    assert asyncio.run(burst()) == [True, True, True, False]


def test_buckets_are_per_key() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(capacity=1, refill_rate=0.001)

    async def run() -> tuple[bool, bool]:
        await limiter.check("a", config)
        a = await limiter.check("a", config)
        b = await limiter.check("b", config)
        return a.allowed, b.allowed

    assert asyncio.run(run()) == (False, True)


def test_reset_refills_bucket() -> None:
    limiter = InMemoryRateLimiter()
    config = RateLimitConfig(capacity=1, refill_rate=0.001)

    async def run() -> bool:
        await limiter.check("k", config)
        await limiter.reset("k")
        return (await limiter.check("k", config)).allowed

    assert asyncio.run(run()) is True


def test_take_refills_with_elapsed_time() -> None:
    config = RateLimitConfig(capacity=10, refill_rate=2.0)
    tokens, result = _take(0.0, 1.0, config)
    assert result.allowed
    assert tokens == 1.0


def test_take_reports_retry_after() -> None:
    config = RateLimitConfig(capacity=10, refill_rate=2.0)
    _, result = _take(0.0, 0.0, config)
    assert not result.allowed
    assert result.retry_after == 0.5

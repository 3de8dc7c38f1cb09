"""Rate limiting dependency for attempt routes.

Applied per route rather than as middleware so health, metrics and quiz
reads stay unlimited while the write paths (start, progress autosave)
are bounded.  Buckets are keyed by the authenticated user: the
dependency runs after ``require_user``, so a forged token never gets a
bucket of its own.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Response, status

from app.api.dependencies import require_user
from app.core.metrics import RATE_LIMIT_HITS
from app.db.redis import redis_pool
from app.models.principal import Principal
from app.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    _rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    _rate_limiter = InMemoryRateLimiter()

# Autosave: bursts of answer clicks, ~2 writes/second sustained
PROGRESS_LIMIT = RateLimitConfig(capacity=30, refill_rate=2.0)
# Starting attempts is rare; a tight bucket stops scripted attempt farming
START_LIMIT = RateLimitConfig(capacity=10, refill_rate=0.2)


def require_rate_limit(config: RateLimitConfig = RateLimitConfig(), *, scope: str):
    """Dependency factory: one bucket per (scope, user)."""

    async def _check(
        response: Response,
        principal: Annotated[Principal, Depends(require_user)],
    ) -> None:
        key = f"user:{principal.user_id}:{scope}"
        result = await _rate_limiter.check(key, config)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(key_type="user").inc()
            logger.warning(
                "Rate limit exceeded user=%s scope=%s",
                principal.user_id,
                scope,
                extra={"user_id": principal.user_id},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"kind": "rate_limited", "message": "Rate limit exceeded"},
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)

    return _check

"""Health and readiness endpoints.

  /health (liveness): always 200 while the process can answer.  The body
  reports each backing service so an operator sees a partial outage
  without the orchestrator restarting the container.

  /ready (readiness): 503 when the attempt store is configured but
  unreachable.  Attempts cannot be read or written without it, so the
  instance should leave the load balancer until it recovers.  Redis is
  not critical: the quiz cache and rate limiter degrade to in-memory.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from redis.exceptions import RedisError

from app.db import engine as db_engine
from app.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _redis_status() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except (RedisError, OSError):
        logger.warning("Redis ping failed during health check")
        return "degraded"
    return "ok"


async def _database_status() -> str:
    if db_engine.engine is None:
        return "not_configured"
    return "ok" if await db_engine.ping_database() else "degraded"


@router.get("/health")
async def health() -> dict:
    checks = {
        "redis": await _redis_status(),
        "database": await _database_status(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)

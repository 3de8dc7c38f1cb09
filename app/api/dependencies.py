from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.clock import system_clock
from app.core.config import SETTINGS
from app.db.engine import async_session_factory, session_scope
from app.models.principal import Principal
from app.repos.attempt_repo import AttemptRepo, InMemoryAttemptRepo
from app.repos.pg_attempt_repo import PgAttemptRepo
from app.repos.pg_quiz_repo import PgQuizRepo
from app.repos.quiz_repo import InMemoryQuizRepo, QuizRepo, seed_sample_quiz
from app.services import token_service
from app.services.attempt_service import QuizAttemptService
from app.services.cache import cache_service
from app.services.quiz_catalog import QuizCatalog
from app.services.scoring import AnswerKeyScorer

logger = logging.getLogger(__name__)

# Token URL belongs to the identity provider; only used for the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Resolve the caller's identity from the bearer token, or 401."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"kind": "unauthorized", "message": "Token expired"},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"kind": "unauthorized", "message": "Invalid token"},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=str(claims["sub"]),
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug("Token validated for user=%s", principal.user_id)
    return principal


# ---------------------------------------------------------------------------
# Attempt service wiring
# ---------------------------------------------------------------------------
# Without DATABASE_URL the service runs on process-local repos (dev, tests).
# With it, each request gets its own session and Pg repos bound to it.

attempt_repo = InMemoryAttemptRepo()
quiz_repo = InMemoryQuizRepo()
seed_sample_quiz(quiz_repo)

scorer = AnswerKeyScorer(SETTINGS.score_unit)


def build_attempt_service(attempts: AttemptRepo, quizzes: QuizRepo) -> QuizAttemptService:
    return QuizAttemptService(
        attempts=attempts,
        quizzes=QuizCatalog(quizzes, cache_service, SETTINGS.quiz_cache_ttl_seconds),
        scorer=scorer,
        clock=system_clock,
        expiry_grace_ms=SETTINGS.attempt_expiry_grace_ms,
    )


async def get_attempt_service() -> AsyncGenerator[QuizAttemptService, None]:
    if async_session_factory is None:
        yield build_attempt_service(attempt_repo, quiz_repo)
        return

    async with session_scope() as session:
        yield build_attempt_service(PgAttemptRepo(session), PgQuizRepo(session))

"""Read-through cached quiz definition lookup.

QuizCatalog wraps any QuizRepo and satisfies the same Protocol, so the
attempt service never knows whether a definition came from Redis, the
in-process cache, or the store:

    catalog.get_quiz(id) → cache hit  → decode → Quiz
                         → cache miss → repo.get_quiz(id) → encode → cache → Quiz

Unknown quiz ids are not cached; a quiz created after a miss becomes
visible on the next call.  A failing cache degrades to a store read with
a warning.  A failing store propagates as UnavailableError from the repo.
"""

from __future__ import annotations

import json
import logging

from redis.exceptions import RedisError

from app.core.metrics import CACHE_OPERATIONS
from app.models.quiz import Question, Quiz
from app.repos.quiz_repo import QuizRepo
from app.services.cache import CacheService

logger = logging.getLogger(__name__)


def _cache_key(quiz_id: str) -> str:
    return f"quiz:{quiz_id}"


def encode_quiz(quiz: Quiz) -> str:
    return json.dumps(
        {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "duration_ms": quiz.duration_ms,
            "questions": [
                {
                    "id": q.id,
                    "prompt": q.prompt,
                    "options": list(q.options),
                    "correct_answer": q.correct_answer,
                    "position": q.position,
                }
                for q in quiz.questions
            ],
        }
    )


def decode_quiz(raw: str) -> Quiz:
    data = json.loads(raw)
    return Quiz(
        id=data["id"],
        title=data["title"],
        description=data.get("description", ""),
        duration_ms=data.get("duration_ms"),
        questions=tuple(
            Question(
                id=q["id"],
                prompt=q["prompt"],
                options=tuple(q.get("options", ())),
                correct_answer=q["correct_answer"],
                position=q.get("position", 0),
            )
            for q in data.get("questions", ())
        ),
    )


class QuizCatalog:
    def __init__(self, repo: QuizRepo, cache: CacheService, ttl_seconds: int) -> None:
        self._repo = repo
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        key = _cache_key(quiz_id)

        cached: str | None = None
        try:
            cached = await self._cache.get(key)
        except RedisError:
            logger.warning("Quiz cache read failed; reading store", exc_info=True)

        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            return decode_quiz(cached)

        CACHE_OPERATIONS.labels(operation="miss").inc()
        quiz = await self._repo.get_quiz(quiz_id)
        if quiz is None:
            return None

        try:
            await self._cache.set(key, encode_quiz(quiz), self._ttl_seconds)
        except RedisError:
            logger.warning("Quiz cache write failed", exc_info=True)
        return quiz

    async def invalidate(self, quiz_id: str) -> None:
        await self._cache.delete(_cache_key(quiz_id))

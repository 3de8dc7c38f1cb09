from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.core.errors import ConflictError, NotFoundError
from app.models.attempt import Attempt, AttemptStatus


class AttemptRepo(Protocol):
    async def get(self, attempt_id: UUID) -> Attempt | None: ...
    async def create(self, attempt: Attempt) -> Attempt: ...
    async def put(self, attempt: Attempt) -> None: ...
    async def find_in_progress(self, user_id: str, quiz_id: str) -> Attempt | None: ...
    async def list_for_user_quiz(self, user_id: str, quiz_id: str) -> list[Attempt]: ...
    async def list_submitted_for_quiz(self, quiz_id: str) -> list[Attempt]: ...


class InMemoryAttemptRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Attempt] = {}

    async def get(self, attempt_id: UUID) -> Attempt | None:
        return self._by_id.get(attempt_id)

    async def create(self, attempt: Attempt) -> Attempt:
        if attempt.id in self._by_id:
            raise ValueError("attempt id already exists")
        if attempt.is_in_progress and self._live(attempt.user_id, attempt.quiz_id):
            # Same rule as the partial unique index on quiz_attempts
            raise ConflictError(
                f"user {attempt.user_id} already has a live attempt on {attempt.quiz_id}"
            )
        self._by_id[attempt.id] = attempt
        return attempt

    async def put(self, attempt: Attempt) -> None:
        # Whole-record replace: the service always writes a complete Attempt
        if attempt.id not in self._by_id:
            raise NotFoundError(f"attempt {attempt.id} not found")
        self._by_id[attempt.id] = attempt

    async def find_in_progress(self, user_id: str, quiz_id: str) -> Attempt | None:
        return max(self._live(user_id, quiz_id), key=lambda a: a.started_at, default=None)

    async def list_for_user_quiz(self, user_id: str, quiz_id: str) -> list[Attempt]:
        mine = [
            a
            for a in self._by_id.values()
            if a.user_id == user_id and a.quiz_id == quiz_id
        ]
        return sorted(mine, key=lambda a: a.started_at, reverse=True)

    async def list_submitted_for_quiz(self, quiz_id: str) -> list[Attempt]:
        return [
            a
            for a in self._by_id.values()
            if a.quiz_id == quiz_id and a.status is AttemptStatus.SUBMITTED
        ]

    def _live(self, user_id: str, quiz_id: str) -> list[Attempt]:
        # synchronous so the check and insert in create() cannot interleave
        return [
            a
            for a in self._by_id.values()
            if a.user_id == user_id
            and a.quiz_id == quiz_id
            and a.status is AttemptStatus.IN_PROGRESS
        ]

"""PostgreSQL implementation of AttemptRepo."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, UnavailableError
from app.db.tables import QuizAttemptRow
from app.models.attempt import Attempt, AttemptStatus, StoredAnswer

logger = logging.getLogger(__name__)


class PgAttemptRepo:
    """Satisfies the AttemptRepo Protocol using PostgreSQL via SQLAlchemy.

    put() is a single-row UPDATE of every mutable column.  Two concurrent
    progress writes for the same attempt both succeed and the later one
    wins; there is no version column.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, attempt_id: UUID) -> Attempt | None:
        stmt = select(QuizAttemptRow).where(QuizAttemptRow.id == attempt_id)
        try:
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Attempt read failed", extra={"attempt_id": str(attempt_id)})
            raise UnavailableError("attempt store unavailable") from exc
        if row is None:
            return None
        return _row_to_attempt(row)

    async def create(self, attempt: Attempt) -> Attempt:
        row = QuizAttemptRow(
            id=attempt.id,
            user_id=attempt.user_id,
            quiz_id=attempt.quiz_id,
            question_ids=list(attempt.question_ids),
            started_at=attempt.started_at,
            **_mutable_columns(attempt),
        )
        try:
            # Savepoint so a lost race leaves the outer transaction usable
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            logger.info(
                "Live attempt already exists user=%s quiz=%s",
                attempt.user_id,
                attempt.quiz_id,
            )
            raise ConflictError(
                f"user {attempt.user_id} already has a live attempt on {attempt.quiz_id}"
            ) from exc
        except SQLAlchemyError as exc:
            logger.exception("Attempt insert failed", extra={"attempt_id": str(attempt.id)})
            raise UnavailableError("attempt store unavailable") from exc
        return attempt

    async def put(self, attempt: Attempt) -> None:
        stmt = (
            update(QuizAttemptRow)
            .where(QuizAttemptRow.id == attempt.id)
            .values(**_mutable_columns(attempt))
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Attempt update failed", extra={"attempt_id": str(attempt.id)})
            raise UnavailableError("attempt store unavailable") from exc
        if result.rowcount == 0:
            raise NotFoundError(f"attempt {attempt.id} not found")

    async def find_in_progress(self, user_id: str, quiz_id: str) -> Attempt | None:
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.user_id == user_id,
                QuizAttemptRow.quiz_id == quiz_id,
                QuizAttemptRow.status == AttemptStatus.IN_PROGRESS.value,
            )
            .order_by(QuizAttemptRow.started_at.desc())
            .limit(1)
        )
        rows = await self._fetch(stmt)
        return rows[0] if rows else None

    async def list_for_user_quiz(self, user_id: str, quiz_id: str) -> list[Attempt]:
        stmt = (
            select(QuizAttemptRow)
            .where(
                QuizAttemptRow.user_id == user_id,
                QuizAttemptRow.quiz_id == quiz_id,
            )
            .order_by(QuizAttemptRow.started_at.desc())
        )
        return await self._fetch(stmt)

    async def list_submitted_for_quiz(self, quiz_id: str) -> list[Attempt]:
        stmt = select(QuizAttemptRow).where(
            QuizAttemptRow.quiz_id == quiz_id,
            QuizAttemptRow.status == AttemptStatus.SUBMITTED.value,
        )
        return await self._fetch(stmt)

    async def _fetch(self, stmt) -> list[Attempt]:
        try:
            rows = (await self._session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Attempt query failed")
            raise UnavailableError("attempt store unavailable") from exc
        return [_row_to_attempt(r) for r in rows]


def _mutable_columns(attempt: Attempt) -> dict:
    return {
        "status": attempt.status.value,
        "current_question_index": attempt.current_question_index,
        "answers": {qid: _encode_answer(a) for qid, a in attempt.answers.items()},
        "time_remaining_ms": attempt.time_remaining_ms,
        "updated_at": attempt.updated_at,
        "expired_at": attempt.expired_at,
        "submitted_at": attempt.submitted_at,
        "score": attempt.score,
        "correct_count": attempt.correct_count,
        "time_spent_ms": attempt.time_spent_ms,
    }


def _row_to_attempt(row: QuizAttemptRow) -> Attempt:
    return Attempt(
        id=row.id,
        user_id=row.user_id,
        quiz_id=row.quiz_id,
        status=AttemptStatus(row.status),
        current_question_index=row.current_question_index,
        answers={
            qid: _decode_answer(qid, raw) for qid, raw in (row.answers or {}).items()
        },
        time_remaining_ms=row.time_remaining_ms,
        question_ids=tuple(row.question_ids or ()),
        started_at=row.started_at,
        updated_at=row.updated_at,
        expired_at=row.expired_at,
        submitted_at=row.submitted_at,
        score=row.score,
        correct_count=row.correct_count,
        time_spent_ms=row.time_spent_ms,
    )


def _encode_answer(answer: StoredAnswer) -> dict:
    return {
        "selected_answer": answer.selected_answer,
        "marked_for_review": answer.marked_for_review,
        "answered_at": answer.answered_at,
    }


def _decode_answer(question_id: str, raw: dict | str) -> StoredAnswer:
    # Rows written before answers carried review flags hold a bare string
    if isinstance(raw, str):
        return StoredAnswer(question_id=question_id, selected_answer=raw)
    return StoredAnswer(
        question_id=question_id,
        selected_answer=raw.get("selected_answer"),
        marked_for_review=bool(raw.get("marked_for_review", False)),
        answered_at=raw.get("answered_at"),
    )

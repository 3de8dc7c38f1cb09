"""PostgreSQL implementation of QuizRepo."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import UnavailableError
from app.db.tables import QuizQuestionRow, QuizRow
from app.models.quiz import Question, Quiz

logger = logging.getLogger(__name__)


class PgQuizRepo:
    """Satisfies the QuizRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        quiz_stmt = select(QuizRow).where(QuizRow.id == quiz_id)
        questions_stmt = (
            select(QuizQuestionRow)
            .where(QuizQuestionRow.quiz_id == quiz_id)
            .order_by(QuizQuestionRow.position.asc())
        )
        try:
            row = (await self._session.execute(quiz_stmt)).scalar_one_or_none()
            if row is None:
                return None
            question_rows = (await self._session.execute(questions_stmt)).scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Quiz lookup failed", extra={"quiz_id": quiz_id})
            raise UnavailableError("quiz store unavailable") from exc

        return Quiz(
            id=row.id,
            title=row.title,
            description=row.description or "",
            duration_ms=row.duration_ms,
            questions=tuple(
                Question(
                    id=q.id,
                    prompt=q.prompt,
                    options=tuple(q.options or ()),
                    correct_answer=q.correct_answer,
                    position=q.position,
                )
                for q in question_rows
            ),
        )

"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between SQLAlchemy rows and domain dataclasses; nothing
outside app/repos/ touches a Row class.

Timestamps are epoch milliseconds (BIGINT), matching the Clock.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class QuizQuestionRow(Base):
    __tablename__ = "quiz_questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    quiz_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("quizzes.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=[]
    )
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)


class QuizAttemptRow(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        # start_attempt's resume lookup and the per-user attempt list
        Index("ix_quiz_attempts_user_quiz_status", "user_id", "quiz_id", "status"),
        # at most one live attempt per user and quiz
        Index(
            "uq_quiz_attempts_live",
            "user_id",
            "quiz_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), nullable=False)
    quiz_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("quizzes.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="in_progress"
    )  # in_progress|submitted|expired
    current_question_index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    # {question_id: {selected_answer, marked_for_review, answered_at}}
    answers: Mapped[dict[str, dict]] = mapped_column(JSONB, nullable=False, default={})
    time_remaining_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    question_ids: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=[])
    started_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expired_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    submitted_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    correct_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    time_spent_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

"""Attempt entity and its state machine.

    in_progress --expire()--> expired --submit()--> submitted
    in_progress --submit()--> submitted

The transition methods below are the only code that produces an Attempt
with a different status.  Each one checks the current status first and
raises InvalidStateError otherwise, so every entry point (HTTP, tests,
future jobs) enforces the same rules.  Attempts are frozen; a transition
returns a new instance for the caller to persist.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from uuid import UUID, uuid4

from app.core.errors import ForbiddenError, InvalidStateError, ValidationError
from app.models.quiz import Quiz


@dataclass(frozen=True, slots=True)
class StoredAnswer:
    """One question's recorded state within an attempt."""

    question_id: str
    selected_answer: str | None = None
    marked_for_review: bool = False
    answered_at: int | None = None


@dataclass(frozen=True, slots=True)
class AnswerUpdate:
    """Incoming change to one answer.  None means "not sent": keep stored."""

    question_id: str
    selected_answer: str | None = None
    marked_for_review: bool | None = None
    answered_at: int | None = None

    def apply(self, current: StoredAnswer | None, now_ms: int) -> StoredAnswer:
        """Field-wise merge onto the stored record.

        Flagging a question for review keeps its selected answer.
        answered_at is stamped only when this update selects an answer.
        """
        cur = current or StoredAnswer(question_id=self.question_id)
        return StoredAnswer(
            question_id=self.question_id,
            selected_answer=(
                cur.selected_answer
                if self.selected_answer is None
                else self.selected_answer
            ),
            marked_for_review=(
                cur.marked_for_review
                if self.marked_for_review is None
                else self.marked_for_review
            ),
            answered_at=(
                (self.answered_at or now_ms)
                if self.selected_answer
                else cur.answered_at
            ),
        )


def as_answer_updates(
    answers: Mapping[str, str] | Iterable[AnswerUpdate] | None,
) -> list[AnswerUpdate]:
    """Accept ``{question_id: selected_answer}`` shorthand or AnswerUpdates."""
    if answers is None:
        return []
    if isinstance(answers, Mapping):
        return [
            AnswerUpdate(question_id=qid, selected_answer=selected)
            for qid, selected in answers.items()
        ]
    return list(answers)


class AttemptStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class Attempt:
    id: UUID
    user_id: str
    quiz_id: str
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    current_question_index: int = 0
    answers: Mapping[str, StoredAnswer] = field(default_factory=dict)
    time_remaining_ms: int | None = None  # None = untimed
    question_ids: tuple[str, ...] = ()
    started_at: int = 0
    updated_at: int = 0
    expired_at: int | None = None
    submitted_at: int | None = None
    score: float | None = None
    correct_count: int | None = None
    time_spent_ms: int | None = None

    @staticmethod
    def new(*, user_id: str, quiz: Quiz, now_ms: int) -> Attempt:
        return Attempt(
            id=uuid4(),
            user_id=user_id,
            quiz_id=quiz.id,
            status=AttemptStatus.IN_PROGRESS,
            current_question_index=0,
            answers={},
            time_remaining_ms=quiz.duration_ms,
            question_ids=quiz.question_ids,
            started_at=now_ms,
            updated_at=now_ms,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    @property
    def selections(self) -> dict[str, str]:
        """question_id -> selected answer, for questions that have one."""
        return {
            qid: a.selected_answer
            for qid, a in self.answers.items()
            if a.selected_answer is not None
        }

    @property
    def is_in_progress(self) -> bool:
        return self.status is AttemptStatus.IN_PROGRESS

    @property
    def is_submitted(self) -> bool:
        return self.status is AttemptStatus.SUBMITTED

    def deadline_ms(self, grace_ms: int = 0) -> int | None:
        """Wall-clock instant after which the time budget is spent."""
        if self.time_remaining_ms is None:
            return None
        return self.updated_at + self.time_remaining_ms + grace_ms

    def is_past_deadline(self, now_ms: int, grace_ms: int = 0) -> bool:
        deadline = self.deadline_ms(grace_ms)
        return deadline is not None and now_ms >= deadline

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def ensure_owned_by(self, user_id: str) -> None:
        if self.user_id != user_id:
            raise ForbiddenError("attempt belongs to another user")

    def _ensure_in_progress(self) -> None:
        if not self.is_in_progress:
            raise InvalidStateError(f"attempt already finalized ({self.status})")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def with_progress(
        self,
        *,
        now_ms: int,
        current_question_index: int | None = None,
        time_remaining_ms: int | None = None,
        answers: Mapping[str, str] | Iterable[AnswerUpdate] | None = None,
    ) -> Attempt:
        """Apply a progress update: merge answers, overwrite the rest.

        Fields left as None are untouched.  A time value <= 0 is not a
        progress update at all; callers route it to expire() instead.
        """
        self._ensure_in_progress()

        if time_remaining_ms is not None and time_remaining_ms <= 0:
            raise ValidationError("time remaining must be positive to record progress")

        if current_question_index is not None:
            upper = max(self.total_questions, 1)
            if not 0 <= current_question_index < upper:
                raise ValidationError(
                    f"currentQuestionIndex must be in [0, {upper}) "
                    f"(got {current_question_index})"
                )

        updates = as_answer_updates(answers)
        unknown = sorted({u.question_id for u in updates} - set(self.question_ids))
        if unknown:
            raise ValidationError(
                f"answers reference questions not in this quiz: {unknown}"
            )

        merged = dict(self.answers)
        for update in updates:
            merged[update.question_id] = update.apply(
                merged.get(update.question_id), now_ms
            )

        return replace(
            self,
            current_question_index=(
                self.current_question_index
                if current_question_index is None
                else current_question_index
            ),
            time_remaining_ms=(
                self.time_remaining_ms
                if time_remaining_ms is None
                else time_remaining_ms
            ),
            answers=merged,
            updated_at=now_ms,
        )

    def expire(self, *, now_ms: int) -> Attempt:
        self._ensure_in_progress()
        return replace(
            self,
            status=AttemptStatus.EXPIRED,
            time_remaining_ms=0,
            expired_at=now_ms,
            updated_at=now_ms,
        )

    def submit(self, *, now_ms: int, score: float, correct_count: int) -> Attempt:
        if self.status not in (AttemptStatus.IN_PROGRESS, AttemptStatus.EXPIRED):
            raise InvalidStateError(f"attempt cannot be submitted ({self.status})")
        return replace(
            self,
            status=AttemptStatus.SUBMITTED,
            submitted_at=now_ms,
            updated_at=now_ms,
            score=score,
            correct_count=correct_count,
            time_spent_ms=max(0, now_ms - self.started_at),
        )

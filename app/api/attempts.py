"""Attempt endpoints: progress autosave, submission, and reads.

  PATCH /attempts/{attemptId}/progress  → update_progress
  POST  /attempts/{attemptId}/submit    → submit_attempt (safe to retry)
  GET   /attempts/{attemptId}           → get_attempt
  GET   /attempts/{attemptId}/review    → per-question breakdown, after submit

Starting an attempt lives on the quiz resource (app/api/quizzes.py).
Handlers only resolve identity, call one service method, and shape the
``{"attempt": ...}`` envelope; every rule lives in the service and model.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.api.dependencies import get_attempt_service, require_user
from app.api.errors import to_http_exception
from app.api.ratelimit import PROGRESS_LIMIT, require_rate_limit
from app.core.errors import AttemptError
from app.models.attempt import AnswerUpdate, Attempt
from app.models.principal import Principal
from app.services.attempt_service import AttemptReview, QuizAttemptService

router = APIRouter(prefix="/attempts", tags=["attempts"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswerOut(CamelModel):
    question_id: str
    selected_answer: str | None
    marked_for_review: bool
    answered_at: int | None


class AttemptOut(CamelModel):
    id: str
    user_id: str
    quiz_id: str
    status: str  # in_progress|submitted|expired
    current_question_index: int
    answers: list[AnswerOut]
    time_remaining: int | None  # whole seconds, rounded up
    time_remaining_ms: int | None
    total_questions: int
    started_at: int
    updated_at: int
    expired_at: int | None
    submitted_at: int | None
    score: float | None
    correct_count: int | None
    time_spent_ms: int | None

    @staticmethod
    def from_attempt(attempt: Attempt) -> AttemptOut:
        ms = attempt.time_remaining_ms
        return AttemptOut(
            id=str(attempt.id),
            user_id=attempt.user_id,
            quiz_id=attempt.quiz_id,
            status=attempt.status.value,
            current_question_index=attempt.current_question_index,
            answers=[
                AnswerOut(
                    question_id=a.question_id,
                    selected_answer=a.selected_answer,
                    marked_for_review=a.marked_for_review,
                    answered_at=a.answered_at,
                )
                for a in (
                    attempt.answers[qid]
                    for qid in attempt.question_ids
                    if qid in attempt.answers
                )
            ],
            time_remaining=None if ms is None else -(-ms // 1000),
            time_remaining_ms=ms,
            total_questions=attempt.total_questions,
            started_at=attempt.started_at,
            updated_at=attempt.updated_at,
            expired_at=attempt.expired_at,
            submitted_at=attempt.submitted_at,
            score=attempt.score,
            correct_count=attempt.correct_count,
            time_spent_ms=attempt.time_spent_ms,
        )


class AttemptEnvelope(BaseModel):
    attempt: AttemptOut


class AnswerIn(CamelModel):
    """One answer change.  Omitted fields keep their stored value."""

    question_id: str
    selected_answer: str | None = None
    marked_for_review: bool | None = None
    answered_at: int | None = None

    def to_update(self) -> AnswerUpdate:
        return AnswerUpdate(
            question_id=self.question_id,
            selected_answer=self.selected_answer,
            marked_for_review=self.marked_for_review,
            answered_at=self.answered_at,
        )


class ProgressIn(BaseModel):
    """All fields optional; omitted fields are left as stored.

    ``timeRemaining`` is seconds and ``timeRemainingMs`` milliseconds; when
    both are sent the millisecond value wins.  Zero or below expires the
    attempt.  ``answers`` is a list of answer records, or a plain
    ``{questionId: selectedAnswer}`` map.
    """

    current_question_index: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("currentQuestionIndex", "current_question_index"),
    )
    time_remaining_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("timeRemaining", "time_remaining"),
    )
    time_remaining_ms: int | None = Field(
        default=None,
        validation_alias=AliasChoices("timeRemainingMs", "time_remaining_ms"),
    )
    answers: dict[str, str] | list[AnswerIn] | None = None

    def remaining_ms(self) -> int | None:
        if self.time_remaining_ms is not None:
            return self.time_remaining_ms
        if self.time_remaining_seconds is not None:
            return round(self.time_remaining_seconds * 1000)
        return None

    def answer_updates(self) -> dict[str, str] | list[AnswerUpdate] | None:
        if isinstance(self.answers, list):
            return [a.to_update() for a in self.answers]
        return self.answers


class QuestionOutcomeOut(CamelModel):
    question_id: str
    prompt: str
    selected_answer: str | None
    correct_answer: str
    is_correct: bool


class ReviewOut(CamelModel):
    attempt: AttemptOut
    questions: list[QuestionOutcomeOut]

    @staticmethod
    def from_review(review: AttemptReview) -> ReviewOut:
        return ReviewOut(
            attempt=AttemptOut.from_attempt(review.attempt),
            questions=[
                QuestionOutcomeOut(
                    question_id=o.question_id,
                    prompt=o.prompt,
                    selected_answer=o.selected_answer,
                    correct_answer=o.correct_answer,
                    is_correct=o.is_correct,
                )
                for o in review.outcomes
            ],
        )


class ReviewEnvelope(BaseModel):
    review: ReviewOut


Service = Annotated[QuizAttemptService, Depends(get_attempt_service)]
CurrentUser = Annotated[Principal, Depends(require_user)]


@router.patch(
    "/{attempt_id}/progress",
    response_model=AttemptEnvelope,
    dependencies=[Depends(require_rate_limit(PROGRESS_LIMIT, scope="progress"))],
)
async def update_progress(
    attempt_id: UUID,
    body: ProgressIn,
    principal: CurrentUser,
    service: Service,
) -> AttemptEnvelope:
    try:
        attempt = await service.update_progress(
            principal.user_id,
            attempt_id,
            current_question_index=body.current_question_index,
            time_remaining_ms=body.remaining_ms(),
            answers=body.answer_updates(),
        )
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return AttemptEnvelope(attempt=AttemptOut.from_attempt(attempt))


@router.post("/{attempt_id}/submit", response_model=AttemptEnvelope)
async def submit_attempt(
    attempt_id: UUID,
    principal: CurrentUser,
    service: Service,
) -> AttemptEnvelope:
    try:
        attempt = await service.submit_attempt(principal.user_id, attempt_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return AttemptEnvelope(attempt=AttemptOut.from_attempt(attempt))


@router.get("/{attempt_id}", response_model=AttemptEnvelope)
async def get_attempt(
    attempt_id: UUID,
    principal: CurrentUser,
    service: Service,
) -> AttemptEnvelope:
    try:
        attempt = await service.get_attempt(principal.user_id, attempt_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return AttemptEnvelope(attempt=AttemptOut.from_attempt(attempt))


@router.get("/{attempt_id}/review", response_model=ReviewEnvelope)
async def review_attempt(
    attempt_id: UUID,
    principal: CurrentUser,
    service: Service,
) -> ReviewEnvelope:
    try:
        review = await service.review_attempt(principal.user_id, attempt_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return ReviewEnvelope(review=ReviewOut.from_review(review))

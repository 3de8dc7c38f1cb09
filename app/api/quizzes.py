"""Quiz endpoints: start an attempt, plus read-only quiz views.

  POST /quizzes/{quizId}/attempts    → start_attempt (resumes a live attempt)
  GET  /quizzes/{quizId}/attempts    → the caller's attempts, newest first
  GET  /quizzes/{quizId}             → quiz metadata (no answer key)
  GET  /quizzes/{quizId}/questions   → questions without correct answers
  GET  /quizzes/{quizId}/statistics  → aggregate scores of submitted attempts
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.attempts import AttemptEnvelope, AttemptOut, CamelModel
from app.api.dependencies import get_attempt_service, require_user
from app.api.errors import to_http_exception
from app.api.ratelimit import START_LIMIT, require_rate_limit
from app.core.errors import AttemptError
from app.models.principal import Principal
from app.services.attempt_service import QuizAttemptService

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


class QuizOut(CamelModel):
    id: str
    title: str
    description: str
    duration_ms: int | None
    question_count: int


class QuizEnvelope(BaseModel):
    quiz: QuizOut


class QuestionOut(CamelModel):
    id: str
    prompt: str
    options: list[str]
    position: int


class QuestionsEnvelope(BaseModel):
    questions: list[QuestionOut]


class AttemptsEnvelope(BaseModel):
    attempts: list[AttemptOut]


class StatisticsOut(CamelModel):
    quiz_id: str
    total_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float


class StatisticsEnvelope(BaseModel):
    statistics: StatisticsOut


Service = Annotated[QuizAttemptService, Depends(get_attempt_service)]
CurrentUser = Annotated[Principal, Depends(require_user)]


@router.post(
    "/{quiz_id}/attempts",
    response_model=AttemptEnvelope,
    dependencies=[Depends(require_rate_limit(START_LIMIT, scope="start"))],
)
async def start_attempt(
    quiz_id: str,
    principal: CurrentUser,
    service: Service,
) -> AttemptEnvelope:
    try:
        attempt = await service.start_attempt(principal.user_id, quiz_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return AttemptEnvelope(attempt=AttemptOut.from_attempt(attempt))


@router.get("/{quiz_id}/attempts", response_model=AttemptsEnvelope)
async def list_my_attempts(
    quiz_id: str,
    principal: CurrentUser,
    service: Service,
) -> AttemptsEnvelope:
    try:
        attempts = await service.list_attempts(principal.user_id, quiz_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return AttemptsEnvelope(attempts=[AttemptOut.from_attempt(a) for a in attempts])


@router.get("/{quiz_id}", response_model=QuizEnvelope)
async def get_quiz(
    quiz_id: str,
    _principal: CurrentUser,
    service: Service,
) -> QuizEnvelope:
    try:
        quiz = await service.get_quiz(quiz_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return QuizEnvelope(
        quiz=QuizOut(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            duration_ms=quiz.duration_ms,
            question_count=quiz.question_count,
        )
    )


@router.get("/{quiz_id}/questions", response_model=QuestionsEnvelope)
async def get_quiz_questions(
    quiz_id: str,
    _principal: CurrentUser,
    service: Service,
) -> QuestionsEnvelope:
    try:
        quiz = await service.get_quiz(quiz_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return QuestionsEnvelope(
        questions=[QuestionOut(**q) for q in quiz.public_questions()]
    )


@router.get("/{quiz_id}/statistics", response_model=StatisticsEnvelope)
async def get_quiz_statistics(
    quiz_id: str,
    _principal: CurrentUser,
    service: Service,
) -> StatisticsEnvelope:
    try:
        stats = await service.quiz_statistics(quiz_id)
    except AttemptError as exc:
        raise to_http_exception(exc) from None
    return StatisticsEnvelope(
        statistics=StatisticsOut(
            quiz_id=stats.quiz_id,
            total_attempts=stats.total_attempts,
            average_score=stats.average_score,
            highest_score=stats.highest_score,
            lowest_score=stats.lowest_score,
        )
    )

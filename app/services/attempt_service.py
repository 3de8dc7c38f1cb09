"""Quiz attempt lifecycle engine.

Three mutating operations, each one bounded read-modify-write against
the attempt store:

  start_attempt   → create (or resume) an in_progress attempt
  update_progress → merge answers / move position / report time left
  submit_attempt  → grade once and freeze; retries return the same result

Status changes are delegated to the Attempt transition methods, so the
guards live in one place (app/models/attempt.py).  This module decides
*which* transition a request means, persists it, and records metrics.

TIME
----
The time budget is client-reported: each progress call may carry the
remaining milliseconds, last write wins.  A reported value <= 0 expires
the attempt instead of recording the call.  Nothing expires attempts in
the background.  Lapses are noticed lazily:

  - update_progress: only through the reported value (no wall-clock check)
  - submit_attempt:  wall-clock deadline (updated_at + time left + grace)
  - start_attempt:   same deadline, when deciding whether to resume

An expired attempt can still be submitted; it is graded on the answers
recorded before it expired.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import UUID

from app.core.clock import Clock, system_clock
from app.core.errors import (
    AttemptError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnavailableError,
)
from app.core.metrics import (
    ATTEMPT_OPERATION_ERRORS,
    ATTEMPT_SCORE_RATIO,
    ATTEMPTS_EXPIRED,
    ATTEMPTS_STARTED,
    ATTEMPTS_SUBMITTED,
    PROGRESS_UPDATES,
)
from app.models.attempt import AnswerUpdate, Attempt
from app.models.quiz import Quiz
from app.repos.attempt_repo import AttemptRepo
from app.repos.quiz_repo import QuizRepo
from app.services.scoring import QuestionOutcome, Scorer, grade_questions

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AttemptReview:
    attempt: Attempt
    outcomes: list[QuestionOutcome]


@dataclass(frozen=True, slots=True)
class QuizStatistics:
    quiz_id: str
    total_attempts: int
    average_score: float
    highest_score: float
    lowest_score: float


class QuizAttemptService:
    def __init__(
        self,
        *,
        attempts: AttemptRepo,
        quizzes: QuizRepo,
        scorer: Scorer,
        clock: Clock = system_clock,
        expiry_grace_ms: int = 0,
    ) -> None:
        self._attempts = attempts
        self._quizzes = quizzes
        self._scorer = scorer
        self._clock = clock
        self._grace_ms = expiry_grace_ms

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def start_attempt(self, user_id: str, quiz_id: str) -> Attempt:
        """Create an attempt, or resume the caller's live one for this quiz.

        Two concurrent starts can both miss the live lookup; the store
        admits only one live attempt per user and quiz, so the loser gets
        ConflictError and resumes the winner's attempt instead.
        """
        with self._tracked("start", user_id=user_id):
            quiz = await self._require_quiz(quiz_id)
            now = self._clock.now_ms()

            existing = await self._attempts.find_in_progress(user_id, quiz_id)
            if existing is not None:
                if not existing.is_past_deadline(now, self._grace_ms):
                    return self._resumed(existing)

                await self._attempts.put(existing.expire(now_ms=now))
                ATTEMPTS_EXPIRED.labels(trigger="start").inc()
                logger.info("Expired stale attempt=%s before restart", existing.id)

            try:
                attempt = await self._attempts.create(
                    Attempt.new(user_id=user_id, quiz=quiz, now_ms=now)
                )
            except ConflictError:
                winner = await self._attempts.find_in_progress(user_id, quiz_id)
                if winner is None:
                    raise
                logger.info("Concurrent start for user=%s quiz=%s lost the race", user_id, quiz_id)
                return self._resumed(winner)

            ATTEMPTS_STARTED.labels(outcome="created").inc()
            logger.info(
                "Started attempt=%s user=%s quiz=%s questions=%d timed=%s",
                attempt.id,
                user_id,
                quiz_id,
                attempt.total_questions,
                quiz.is_timed,
            )
            return attempt

    async def update_progress(
        self,
        user_id: str,
        attempt_id: UUID,
        *,
        current_question_index: int | None = None,
        time_remaining_ms: int | None = None,
        answers: Mapping[str, str] | Iterable[AnswerUpdate] | None = None,
    ) -> Attempt:
        """Record navigation, remaining time and answers for a live attempt.

        Checks run in order: exists (NotFound), owned (Forbidden),
        in progress (InvalidState).  A reported time of zero or less then
        expires the attempt and returns it; the rest of the call is dropped.
        """
        with self._tracked("progress", user_id=user_id, attempt_id=attempt_id):
            attempt = await self._load_owned(user_id, attempt_id)
            now = self._clock.now_ms()

            # expire() and with_progress() both reject a finalized attempt
            if time_remaining_ms is not None and time_remaining_ms <= 0:
                expired = attempt.expire(now_ms=now)
                await self._attempts.put(expired)
                ATTEMPTS_EXPIRED.labels(trigger="progress").inc()
                logger.info(
                    "Attempt=%s expired: time budget exhausted",
                    attempt_id,
                    extra={"attempt_id": str(attempt_id), "user_id": user_id},
                )
                return expired

            updated = attempt.with_progress(
                now_ms=now,
                current_question_index=current_question_index,
                time_remaining_ms=time_remaining_ms,
                answers=answers,
            )
            await self._attempts.put(updated)
            PROGRESS_UPDATES.inc()
            logger.debug(
                "Progress attempt=%s index=%d answered=%d remaining_ms=%s",
                attempt_id,
                updated.current_question_index,
                len(updated.selections),
                updated.time_remaining_ms,
            )
            return updated

    async def submit_attempt(self, user_id: str, attempt_id: UUID) -> Attempt:
        """Grade and finalize an attempt exactly once.

        Re-submitting a submitted attempt returns it as stored: the scorer
        is not consulted again and submitted_at does not move.
        """
        with self._tracked("submit", user_id=user_id, attempt_id=attempt_id):
            attempt = await self._load_owned(user_id, attempt_id)

            if attempt.is_submitted:
                ATTEMPTS_SUBMITTED.labels(outcome="already_submitted").inc()
                logger.info("Attempt=%s already submitted; returning stored result", attempt_id)
                return attempt

            now = self._clock.now_ms()
            if attempt.is_in_progress and attempt.is_past_deadline(now, self._grace_ms):
                attempt = attempt.expire(now_ms=now)
                ATTEMPTS_EXPIRED.labels(trigger="submit").inc()
                logger.info("Attempt=%s passed its deadline before submit", attempt_id)

            quiz = await self._require_quiz(attempt.quiz_id)
            result = self._scorer.score(attempt.selections, quiz)

            submitted = attempt.submit(
                now_ms=now,
                score=result.score,
                correct_count=result.correct_count,
            )
            await self._attempts.put(submitted)

            ATTEMPTS_SUBMITTED.labels(outcome="graded").inc()
            ATTEMPT_SCORE_RATIO.observe(result.ratio)
            logger.info(
                "Submitted attempt=%s user=%s score=%s correct=%d/%d",
                attempt_id,
                user_id,
                result.score,
                result.correct_count,
                result.total_questions,
            )
            return submitted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_attempt(self, user_id: str, attempt_id: UUID) -> Attempt:
        with self._tracked("get", user_id=user_id, attempt_id=attempt_id):
            return await self._load_owned(user_id, attempt_id)

    async def review_attempt(self, user_id: str, attempt_id: UUID) -> AttemptReview:
        """Per-question breakdown; the answer key stays hidden until submission."""
        with self._tracked("review", user_id=user_id, attempt_id=attempt_id):
            attempt = await self._load_owned(user_id, attempt_id)
            if not attempt.is_submitted:
                raise InvalidStateError("review is available after submission")
            quiz = await self._require_quiz(attempt.quiz_id)
            return AttemptReview(
                attempt=attempt,
                outcomes=grade_questions(attempt.selections, quiz),
            )

    async def list_attempts(self, user_id: str, quiz_id: str) -> list[Attempt]:
        return await self._attempts.list_for_user_quiz(user_id, quiz_id)

    async def get_quiz(self, quiz_id: str) -> Quiz:
        return await self._require_quiz(quiz_id)

    async def quiz_statistics(self, quiz_id: str) -> QuizStatistics:
        await self._require_quiz(quiz_id)
        scores = [
            a.score
            for a in await self._attempts.list_submitted_for_quiz(quiz_id)
            if a.score is not None
        ]
        if not scores:
            return QuizStatistics(quiz_id, 0, 0.0, 0.0, 0.0)
        return QuizStatistics(
            quiz_id=quiz_id,
            total_attempts=len(scores),
            average_score=round(sum(scores) / len(scores), 2),
            highest_score=max(scores),
            lowest_score=min(scores),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resumed(self, attempt: Attempt) -> Attempt:
        ATTEMPTS_STARTED.labels(outcome="resumed").inc()
        logger.info(
            "Resumed attempt=%s user=%s quiz=%s",
            attempt.id,
            attempt.user_id,
            attempt.quiz_id,
        )
        return attempt

    async def _require_quiz(self, quiz_id: str) -> Quiz:
        quiz = await self._quizzes.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"quiz {quiz_id} not found")
        return quiz

    async def _load_owned(self, user_id: str, attempt_id: UUID) -> Attempt:
        attempt = await self._attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError(f"attempt {attempt_id} not found")
        attempt.ensure_owned_by(user_id)
        return attempt

    @contextmanager
    def _tracked(
        self,
        operation: str,
        *,
        user_id: str,
        attempt_id: UUID | None = None,
    ) -> Iterator[None]:
        """Count and log rejected operations; the error itself propagates."""
        try:
            yield
        except UnavailableError:
            ATTEMPT_OPERATION_ERRORS.labels(operation=operation, kind="unavailable").inc()
            raise
        except AttemptError as exc:
            ATTEMPT_OPERATION_ERRORS.labels(operation=operation, kind=exc.kind).inc()
            logger.warning(
                "Rejected %s user=%s attempt=%s kind=%s: %s",
                operation,
                user_id,
                attempt_id,
                exc.kind,
                exc.message,
                extra={
                    "user_id": user_id,
                    "attempt_id": str(attempt_id) if attempt_id else None,
                },
            )
            raise

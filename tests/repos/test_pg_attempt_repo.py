"""PgAttemptRepo behavior that does not need a live database.

Row mapping is exercised on transient row objects; store failures are
simulated with a session whose execute() raises.
"""

from __future__ import annotations

import asyncio
import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import ConflictError, UnavailableError
from app.db.tables import QuizAttemptRow
from app.models.attempt import Attempt, AnswerUpdate
from app.models.quiz import Question, Quiz
from app.repos.pg_attempt_repo import PgAttemptRepo, _mutable_columns, _row_to_attempt

QUIZ = Quiz(
    id="quiz-1",
    title="Quiz",
    duration_ms=10_000,
    questions=(Question(id="q1", prompt="?", correct_answer="A"),),
)


class _FailingSession:
    async def execute(self, stmt):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


class _DuplicateSavepoint:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        # the savepoint flush is where the unique index fires
        raise IntegrityError("INSERT", {}, Exception("duplicate key value"))


class _DuplicateSession:
    def __init__(self) -> None:
        self.added: list = []

    def begin_nested(self):
        return _DuplicateSavepoint()

    def add(self, row) -> None:
        self.added.append(row)


def _attempt() -> Attempt:
    return Attempt.new(user_id="alice", quiz=QUIZ, now_ms=1_000).with_progress(
        now_ms=2_000, answers={"q1": "A"}, time_remaining_ms=8_000
    ).with_progress(
        now_ms=3_000, answers=[AnswerUpdate("q1", marked_for_review=True)]
    )


def test_row_mapping_preserves_attempt() -> None:
    attempt = _attempt()
    row = QuizAttemptRow(
        id=attempt.id,
        user_id=attempt.user_id,
        quiz_id=attempt.quiz_id,
        question_ids=list(attempt.question_ids),
        started_at=attempt.started_at,
        **_mutable_columns(attempt),
    )
    assert _row_to_attempt(row) == attempt


def test_mutable_columns_store_status_as_text() -> None:
    columns = _mutable_columns(_attempt())
    assert columns["status"] == "in_progress"
    assert columns["answers"] == {
        "q1": {"selected_answer": "A", "marked_for_review": True, "answered_at": 2_000}
    }


def test_read_failure_becomes_unavailable() -> None:
    repo = PgAttemptRepo(_FailingSession())  # type: ignore[arg-type]
    with pytest.raises(UnavailableError) as excinfo:
        asyncio.run(repo.get(uuid.uuid4()))
    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_update_failure_becomes_unavailable() -> None:
    repo = PgAttemptRepo(_FailingSession())  # type: ignore[arg-type]
    with pytest.raises(UnavailableError):
        asyncio.run(repo.put(_attempt()))


def test_duplicate_live_attempt_insert_becomes_conflict() -> None:
    session = _DuplicateSession()
    repo = PgAttemptRepo(session)  # type: ignore[arg-type]
    attempt = Attempt.new(user_id="alice", quiz=QUIZ, now_ms=1_000)
    with pytest.raises(ConflictError) as excinfo:
        asyncio.run(repo.create(attempt))
    assert isinstance(excinfo.value.__cause__, IntegrityError)
    assert len(session.added) == 1


def test_legacy_string_answers_still_load() -> None:
    attempt = Attempt.new(user_id="alice", quiz=QUIZ, now_ms=1_000)
    columns = _mutable_columns(attempt)
    columns["answers"] = {"q1": "A"}
    row = QuizAttemptRow(
        id=attempt.id,
        user_id=attempt.user_id,
        quiz_id=attempt.quiz_id,
        question_ids=list(attempt.question_ids),
        started_at=attempt.started_at,
        **columns,
    )
    loaded = _row_to_attempt(row)
    assert loaded.selections == {"q1": "A"}
    assert loaded.answers["q1"].marked_for_review is False

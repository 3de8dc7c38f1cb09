from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import attempt_repo, quiz_repo
from app.api.ratelimit import _rate_limiter
from app.core.clock import FrozenClock
from app.main import app
from app.models.quiz import Question, Quiz
from app.repos.attempt_repo import InMemoryAttemptRepo
from app.repos.quiz_repo import InMemoryQuizRepo, seed_sample_quiz
from app.services import token_service
from app.services.attempt_service import QuizAttemptService
from app.services.cache import cache_service
from app.services.scoring import AnswerKeyScorer

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_attempt_state() -> None:
    """Clear attempts and restore the seeded quiz catalog between tests."""
    attempt_repo._by_id.clear()
    quiz_repo._by_id.clear()
    seed_sample_quiz(quiz_repo)


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(username: str = "test-user") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(username)}"}


@pytest.fixture
def token() -> str:
    return mint_token()


# ---------------------------------------------------------------------------
# Service-level fixtures
# ---------------------------------------------------------------------------

TIMED_QUIZ = Quiz(
    id="timed",
    title="Timed quiz",
    duration_ms=60_000,
    questions=(
        Question(id="a", prompt="A?", correct_answer="1", position=0),
        Question(id="b", prompt="B?", correct_answer="2", position=1),
        Question(id="c", prompt="C?", correct_answer="3", position=2),
    ),
)

UNTIMED_QUIZ = Quiz(
    id="untimed",
    title="Untimed quiz",
    questions=(
        Question(id="x", prompt="X?", correct_answer="yes", position=0),
        Question(id="y", prompt="Y?", correct_answer="no", position=1),
    ),
)

EMPTY_QUIZ = Quiz(id="empty", title="No questions yet")


class CountingScorer:
    """AnswerKeyScorer that records how often it was consulted."""

    def __init__(self, unit: str = "count") -> None:
        self._inner = AnswerKeyScorer(unit)  # type: ignore[arg-type]
        self.calls = 0

    def score(self, answers, quiz):
        self.calls += 1
        return self._inner.score(answers, quiz)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def attempts() -> InMemoryAttemptRepo:
    return InMemoryAttemptRepo()


@pytest.fixture
def quizzes() -> InMemoryQuizRepo:
    repo = InMemoryQuizRepo()
    for quiz in (TIMED_QUIZ, UNTIMED_QUIZ, EMPTY_QUIZ):
        repo.add(quiz)
    return repo


@pytest.fixture
def scorer() -> CountingScorer:
    return CountingScorer()


@pytest.fixture
def service(
    attempts: InMemoryAttemptRepo,
    quizzes: InMemoryQuizRepo,
    scorer: CountingScorer,
    clock: FrozenClock,
) -> QuizAttemptService:
    return QuizAttemptService(
        attempts=attempts,
        quizzes=quizzes,
        scorer=scorer,
        clock=clock,
        expiry_grace_ms=0,
    )

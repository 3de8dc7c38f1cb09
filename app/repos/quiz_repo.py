from __future__ import annotations

from typing import Protocol

from app.models.quiz import Question, Quiz


class QuizRepo(Protocol):
    async def get_quiz(self, quiz_id: str) -> Quiz | None: ...


class InMemoryQuizRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Quiz] = {}

    async def get_quiz(self, quiz_id: str) -> Quiz | None:
        return self._by_id.get(quiz_id)

    def __contains__(self, quiz_id: object) -> bool:
        return quiz_id in self._by_id

    def add(self, quiz: Quiz) -> None:
        if quiz.id in self._by_id:
            raise ValueError("quiz id already exists")
        self._by_id[quiz.id] = quiz


SAMPLE_QUIZ = Quiz(
    id="sample-quiz",
    title="Sample Quiz",
    description="Three-question warm-up used in development",
    duration_ms=10 * 60 * 1000,
    questions=(
        Question(
            id="q1",
            prompt="2 + 2 = ?",
            options=("3", "4", "5", "22"),
            correct_answer="4",
            position=0,
        ),
        Question(
            id="q2",
            prompt="Capital of France?",
            options=("Berlin", "Madrid", "Paris", "Rome"),
            correct_answer="Paris",
            position=1,
        ),
        Question(
            id="q3",
            prompt="H2O is commonly called?",
            options=("Salt", "Water", "Oxygen", "Hydrogen"),
            correct_answer="Water",
            position=2,
        ),
    ),
)


def seed_sample_quiz(repo: InMemoryQuizRepo) -> None:
    """Seed a sample quiz for development. Skip if already present."""
    if SAMPLE_QUIZ.id not in repo:
        repo.add(SAMPLE_QUIZ)

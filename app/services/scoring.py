"""Attempt scoring.

Scoring is a pure function of (answers, quiz definition): no clock, no
randomness, no store access.  Re-running it on a stored attempt always
reproduces the stored score, which is what makes submission safe to
verify after the fact.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from app.core.config import ScoreUnit
from app.models.quiz import Quiz


@dataclass(frozen=True, slots=True)
class ScoreResult:
    correct_count: int
    total_questions: int
    score: float

    @property
    def ratio(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return self.correct_count / self.total_questions


@dataclass(frozen=True, slots=True)
class QuestionOutcome:
    question_id: str
    prompt: str
    selected_answer: str | None
    correct_answer: str
    is_correct: bool


class Scorer(Protocol):
    def score(self, answers: Mapping[str, str], quiz: Quiz) -> ScoreResult: ...


def grade_questions(answers: Mapping[str, str], quiz: Quiz) -> list[QuestionOutcome]:
    """Per-question verdicts in quiz order.  Missing or blank answers are wrong."""
    outcomes = []
    for question in quiz.questions:
        selected = answers.get(question.id)
        outcomes.append(
            QuestionOutcome(
                question_id=question.id,
                prompt=question.prompt,
                selected_answer=selected,
                correct_answer=question.correct_answer,
                is_correct=bool(selected) and selected == question.correct_answer,
            )
        )
    return outcomes


class AnswerKeyScorer:
    """Exact-match scoring against each question's correct answer."""

    def __init__(self, unit: ScoreUnit = "count") -> None:
        self.unit = unit

    def score(self, answers: Mapping[str, str], quiz: Quiz) -> ScoreResult:
        outcomes = grade_questions(answers, quiz)
        correct = sum(1 for o in outcomes if o.is_correct)
        total = len(outcomes)

        if self.unit == "percentage":
            value = round(100 * correct / total, 2) if total else 0.0
        else:
            value = float(correct)

        return ScoreResult(correct_count=correct, total_questions=total, score=value)

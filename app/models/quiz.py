from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    prompt: str
    correct_answer: str
    options: tuple[str, ...] = ()
    position: int = 0


@dataclass(frozen=True, slots=True)
class Quiz:
    """Read-only quiz definition: question set, answer key, time budget."""

    id: str
    title: str
    questions: tuple[Question, ...] = ()
    duration_ms: int | None = None  # None = untimed
    description: str = ""

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def question_ids(self) -> tuple[str, ...]:
        return tuple(q.id for q in self.questions)

    @property
    def is_timed(self) -> bool:
        return self.duration_ms is not None

    def public_questions(self) -> list[dict]:
        """Questions as shown to a learner mid-attempt: no answer key."""
        return [
            {
                "id": q.id,
                "prompt": q.prompt,
                "options": list(q.options),
                "position": q.position,
            }
            for q in self.questions
        ]

"""Value objects passed between the graders, dispatcher and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence


def normalize_text(text: str | None) -> str:
    return (text or "").strip().lower()


@dataclass(frozen=True)
class AnswerOption:
    """One candidate answer belonging to a question."""

    text: str
    is_correct: bool = False
    rank: int | None = None
    placement: str | None = None

    @property
    def normalized(self) -> str:
        return normalize_text(self.text)


@dataclass(frozen=True)
class TestCase:
    """Input/expected-output pair for a programming question."""

    __test__ = False  # not a pytest class

    id: int
    input: str
    expected_output: str


@dataclass(frozen=True)
class Question:
    """The subset of a stored question the graders need."""

    id: int
    type: str
    points_possible: float
    category: str | None = None
    topic: str | None = None


@dataclass(frozen=True)
class GraderOutcome:
    """What a single type grader returns before points are applied."""

    normalized_score: float
    feedback: str


@dataclass(frozen=True)
class GradedQuestionInput:
    question_type: str
    user_response: Any
    answer_options: Sequence[AnswerOption] = field(default_factory=tuple)
    points_possible: float = 0.0


@dataclass(frozen=True)
class GradingResult:
    is_correct: bool
    normalized_score: float
    points_earned: float
    points_possible: float
    feedback: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isCorrect": self.is_correct,
            "normalizedScore": self.normalized_score,
            "pointsEarned": self.points_earned,
            "pointsPossible": self.points_possible,
            "feedback": self.feedback,
        }


__all__ = [
    "AnswerOption",
    "GradedQuestionInput",
    "GraderOutcome",
    "GradingResult",
    "Question",
    "TestCase",
    "normalize_text",
]

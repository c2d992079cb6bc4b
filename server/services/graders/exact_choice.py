"""Grader for single-answer multiple choice questions."""

from __future__ import annotations

from typing import Sequence

from server.core.errors import ConfigurationError
from server.services.models import AnswerOption, GraderOutcome, normalize_text


def grade_exact_choice(selected: str | None, options: Sequence[AnswerOption]) -> GraderOutcome:
    """Score 1.0 when *selected* matches the correct option, ignoring case."""

    correct = next((option for option in options if option.is_correct), None)
    if correct is None:
        raise ConfigurationError("No correct answer found for multiple choice question")

    if normalize_text(selected) == correct.normalized:
        return GraderOutcome(normalized_score=1.0, feedback="Correct!")
    return GraderOutcome(
        normalized_score=0.0,
        feedback=f"Incorrect. The correct answer is: {correct.text}",
    )


__all__ = ["grade_exact_choice"]

"""Grader for select-all-that-apply questions."""

from __future__ import annotations

from typing import Iterable, Sequence

from server.core.errors import ConfigurationError
from server.services.models import AnswerOption, GraderOutcome, normalize_text


def grade_set_overlap(selected: Iterable[str], options: Sequence[AnswerOption]) -> GraderOutcome:
    """Award one share per correct pick and deduct one share per wrong pick."""

    correct_texts = {option.normalized for option in options if option.is_correct}
    if not correct_texts:
        raise ConfigurationError("No correct answers found for select all that apply question")

    user_texts = {normalize_text(text) for text in selected}
    hits = len(user_texts & correct_texts)
    misses = len(user_texts - correct_texts)

    score = max(0.0, (hits - misses) / len(correct_texts))
    if score == 1.0:
        feedback = "Correct! You selected all the right answers."
    else:
        feedback = f"Not quite! You selected {hits} out of {len(correct_texts)} correct answers."
    return GraderOutcome(normalized_score=score, feedback=feedback)


__all__ = ["grade_set_overlap"]

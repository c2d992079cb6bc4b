"""Grader for free-text answers with a list of accepted variants.

An exact (case-insensitive) hit on any accepted variant earns full credit.
Anything else earns partial credit scaled by the edit distance to the closest
variant, so small typos still score well while unrelated text scores zero.
"""

from __future__ import annotations

from typing import Sequence

from server.core.errors import ConfigurationError
from server.services.models import GraderOutcome, normalize_text
from server.services.similarity import edit_distance

SCORE_WHEN_BOTH_EMPTY = 1.0
ALMOST_CORRECT_THRESHOLD = 0.5


def _similarity(distance: int, user_length: int, answer_length: int) -> float:
    longest = max(user_length, answer_length)
    if longest == 0:
        return SCORE_WHEN_BOTH_EMPTY
    return max(0.0, 1.0 - distance / longest)


def grade_fuzzy_text(entered: str | None, accepted: Sequence[str]) -> GraderOutcome:
    if not accepted:
        raise ConfigurationError("No acceptable answers found for fill in the blanks question")

    display_answer = accepted[0]
    incorrect = GraderOutcome(
        normalized_score=0.0,
        feedback=f"Incorrect. The correct answer is: {display_answer}",
    )

    user_text = normalize_text(entered)
    if not user_text:
        return incorrect

    normalized_accepted = [normalize_text(answer) for answer in accepted]
    if user_text in normalized_accepted:
        return GraderOutcome(normalized_score=1.0, feedback="Correct!")

    closest_index = 0
    closest_distance: int | None = None
    for index, candidate in enumerate(normalized_accepted):
        distance = edit_distance(user_text, candidate)
        if closest_distance is None or distance < closest_distance:
            closest_distance = distance
            closest_index = index

    score = _similarity(
        closest_distance or 0,
        len(user_text),
        len(normalized_accepted[closest_index]),
    )
    if score >= ALMOST_CORRECT_THRESHOLD:
        feedback = f"Almost correct! The correct answer is: {accepted[closest_index]}."
    else:
        feedback = incorrect.feedback
    return GraderOutcome(normalized_score=score, feedback=feedback)


__all__ = ["ALMOST_CORRECT_THRESHOLD", "SCORE_WHEN_BOTH_EMPTY", "grade_fuzzy_text"]

"""Grader for drag-and-drop questions that assign items to zones."""

from __future__ import annotations

from typing import Mapping, Sequence, Tuple

from server.core.errors import ConfigurationError
from server.services.models import GraderOutcome, normalize_text


def grade_placement(
    placements: Mapping[str, str] | None,
    correct_pairs: Sequence[Tuple[str, str | None]],
) -> GraderOutcome:
    """Score the share of items the user dropped into their correct zone.

    *correct_pairs* holds ``(item_text, zone)`` tuples.
    """

    total = len(correct_pairs)
    if total == 0:
        raise ConfigurationError("No drag and drop mappings found for question")

    if not placements:
        return GraderOutcome(
            normalized_score=0.0,
            feedback=f"Not quite! You placed 0 out of {total} items correctly.",
        )

    by_item = {normalize_text(item): zone for item, zone in placements.items()}
    matches = 0
    for item_text, zone in correct_pairs:
        user_zone = by_item.get(normalize_text(item_text))
        if user_zone is None:
            continue
        if normalize_text(user_zone) == normalize_text(zone):
            matches += 1

    score = matches / total
    if score == 1.0:
        feedback = "Perfect! All items correctly placed."
    else:
        feedback = f"Not quite! You placed {matches} out of {total} items correctly."
    return GraderOutcome(normalized_score=score, feedback=feedback)


__all__ = ["grade_placement"]

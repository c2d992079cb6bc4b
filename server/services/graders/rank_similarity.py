"""Grader for ranking questions based on Kendall tau distance."""

from __future__ import annotations

from typing import Sequence

from server.core.errors import ValidationError
from server.services.models import AnswerOption, GraderOutcome, normalize_text
from server.services.similarity import count_inversions, max_inversions

SCORE_WHEN_SINGLE_ITEM = 1.0


def reference_order(options: Sequence[AnswerOption]) -> list[str]:
    ranked = sorted(
        options,
        key=lambda option: (option.rank is None, option.rank if option.rank is not None else 0),
    )
    return [option.normalized for option in ranked]


def grade_rank_similarity(order: Sequence[str], options: Sequence[AnswerOption]) -> GraderOutcome:
    reference = reference_order(options)
    user_order = [normalize_text(item) for item in order]

    if len(user_order) != len(reference):
        raise ValidationError(
            f"Ranking has {len(user_order)} items, expected {len(reference)}",
            "Rankings must be the same length.",
        )

    if user_order == reference:
        return GraderOutcome(
            normalized_score=1.0,
            feedback="Perfect! You ranked all items correctly.",
        )

    try:
        inversions = count_inversions(reference, user_order)
    except ValueError as exc:
        raise ValidationError(str(exc), "Ranking contains unknown items.") from exc

    worst = max_inversions(len(reference))
    if worst == 0:
        score = SCORE_WHEN_SINGLE_ITEM
    else:
        score = max(0.0, 1.0 - inversions / worst)
    return GraderOutcome(
        normalized_score=score,
        feedback=f"Not quite! You ordered {score * 100:.0f}% of the items correctly.",
    )


__all__ = ["grade_rank_similarity", "reference_order"]

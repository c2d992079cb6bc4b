"""Route a graded question to its type grader and apply the point value."""

from __future__ import annotations

import enum
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Sequence

from server.core.errors import UnsupportedTypeError, ValidationError
from server.services.graders import (
    grade_exact_choice,
    grade_fuzzy_text,
    grade_placement,
    grade_rank_similarity,
    grade_set_overlap,
)
from server.services.models import (
    AnswerOption,
    GradedQuestionInput,
    GraderOutcome,
    GradingResult,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class QuestionType(str, enum.Enum):
    """Question type tags as stored in ``question.type``."""

    MULTIPLE_CHOICE = "Multiple Choice"
    FILL_IN_THE_BLANKS = "Fill In the Blanks"
    SELECT_ALL_THAT_APPLY = "Select All That Apply"
    RANKED_CHOICE = "Ranked Choice"
    DRAG_AND_DROP = "Drag and Drop"
    PROGRAMMING = "Programming"

    @classmethod
    def parse(cls, value: Any) -> "QuestionType | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


def _require_text(value: Any, question_type: QuestionType) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{question_type.value} expects a string answer, got {type(value).__name__}")
    return value


def _require_text_list(value: Any, question_type: QuestionType) -> list[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{question_type.value} expects a list of strings")
    return list(value)


def _require_placements(value: Any) -> Mapping[str, str] | None:
    if value is None:
        return None
    if not isinstance(value, Mapping) or not all(
        isinstance(key, str) and isinstance(zone, str) for key, zone in value.items()
    ):
        raise ValidationError("Drag and Drop expects a mapping of item text to zone")
    return value


def _correct_only(options: Sequence[AnswerOption]) -> list[AnswerOption]:
    return [option for option in options if option.is_correct]


def compute_points(normalized_score: float, points_possible: float) -> float:
    """Return points earned, rounded to two decimal places."""

    # half-up: 1.125 -> 1.13
    earned = Decimal(str(normalized_score * points_possible))
    return float(earned.quantize(CENTS, rounding=ROUND_HALF_UP))


def grade_response(
    question_type: QuestionType,
    user_response: Any,
    options: Sequence[AnswerOption],
) -> GraderOutcome:
    if question_type is QuestionType.MULTIPLE_CHOICE:
        return grade_exact_choice(_require_text(user_response, question_type), options)
    if question_type is QuestionType.FILL_IN_THE_BLANKS:
        entered = None if user_response is None else _require_text(user_response, question_type)
        accepted = [option.text for option in _correct_only(options)]
        return grade_fuzzy_text(entered, accepted)
    if question_type is QuestionType.SELECT_ALL_THAT_APPLY:
        return grade_set_overlap(_require_text_list(user_response, question_type), options)
    if question_type is QuestionType.RANKED_CHOICE:
        return grade_rank_similarity(
            _require_text_list(user_response, question_type), _correct_only(options)
        )
    if question_type is QuestionType.DRAG_AND_DROP:
        pairs = [(option.text, option.placement) for option in _correct_only(options)]
        return grade_placement(_require_placements(user_response), pairs)
    raise UnsupportedTypeError(f'Question type "{question_type.value}" is not graded by the dispatcher')


def grade_question(graded: GradedQuestionInput, *, question_id: int | None = None) -> GradingResult:
    """Grade *graded* and wrap the outcome into a :class:`GradingResult`."""

    question_type = QuestionType.parse(graded.question_type)
    if question_type is None:
        raise UnsupportedTypeError(
            f'Unsupported question type "{graded.question_type}" for question {question_id}'
        )

    outcome = grade_response(question_type, graded.user_response, graded.answer_options)
    score = min(1.0, max(0.0, float(outcome.normalized_score)))
    points_possible = float(graded.points_possible or 0)

    result = GradingResult(
        is_correct=score == 1.0,
        normalized_score=score,
        points_earned=compute_points(score, points_possible),
        points_possible=points_possible,
        feedback=outcome.feedback,
    )
    logger.debug(
        "Graded question %s (%s): score=%.3f points=%s/%s",
        question_id,
        question_type.value,
        score,
        result.points_earned,
        points_possible,
    )
    return result


__all__ = ["QuestionType", "compute_points", "grade_question", "grade_response"]

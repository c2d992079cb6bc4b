"""Endpoints for grading non-code questions."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, ConfigDict, Field, field_validator

from server.core.db import db_conn
from server.core.errors import NotFoundError
from server.services.answers import serialize_answer
from server.services.dispatcher import grade_question
from server.services.models import AnswerOption, GradedQuestionInput
from server.services.submissions import (
    SubmissionRecord,
    insert_submission_record,
    load_answer_options,
    load_question,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/grading", tags=["grading"])


class AnswerOptionPayload(BaseModel):
    text: str
    is_correct: bool = Field(False, alias="isCorrect")
    rank: int | None = None
    placement: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    def to_option(self) -> AnswerOption:
        return AnswerOption(
            text=self.text,
            is_correct=self.is_correct,
            rank=self.rank,
            placement=self.placement,
        )


class GradeRequest(BaseModel):
    """Stateless grading request carrying its own answer key."""

    question_type: str = Field(..., alias="questionType", min_length=1)
    user_response: Any = Field(None, alias="userResponse")
    answer_options: list[AnswerOptionPayload] = Field(default_factory=list, alias="answerOptions")
    points_possible: float = Field(0.0, alias="pointsPossible", ge=0)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("question_type", mode="before")
    @classmethod
    def _strip_question_type(cls, value: Any) -> str:
        if value is None:
            raise ValueError("questionType is required")
        return str(value).strip()


class SubmitAnswerRequest(BaseModel):
    user_answer: Any = Field(..., alias="userAnswer")

    model_config = ConfigDict(populate_by_name=True)


@router.post("/grade")
def grade(request: GradeRequest) -> dict[str, Any]:
    result = grade_question(
        GradedQuestionInput(
            question_type=request.question_type,
            user_response=request.user_response,
            answer_options=tuple(option.to_option() for option in request.answer_options),
            points_possible=request.points_possible,
        )
    )
    return result.to_dict()


@router.post("/questions/{question_id}/submit")
def submit_answer(
    question_id: int,
    request: SubmitAnswerRequest,
    user_id: int = Header(..., alias="X-User-Id"),
) -> dict[str, Any]:
    """Grade a stored question and record the attempt."""

    with db_conn() as conn:
        question = load_question(conn, question_id)
        if question is None:
            raise NotFoundError(f"No question found: id {question_id}", "Question not found.")
        options = load_answer_options(conn, question_id)
        result = grade_question(
            GradedQuestionInput(
                question_type=question.type,
                user_response=request.user_answer,
                answer_options=tuple(options),
                points_possible=question.points_possible,
            ),
            question_id=question_id,
        )
        submission_id = insert_submission_record(
            conn,
            SubmissionRecord(
                user_id=user_id,
                problem_id=question_id,
                user_answer=serialize_answer(question.type, request.user_answer),
                is_correct=result.is_correct,
                points_earned=result.points_earned,
                points_possible=result.points_possible,
                category=question.category,
                topic=question.topic,
            ),
        )

    payload = result.to_dict()
    payload["questionId"] = question_id
    payload["submissionId"] = submission_id
    return payload


__all__ = ["router"]

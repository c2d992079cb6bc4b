"""Endpoint for running and grading code submissions."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Header
from pydantic import BaseModel, ConfigDict, Field

from server.core.db import db_conn
from server.services.code_execution import CodeExecutionService
from server.services.judge import build_judge_client

router = APIRouter(prefix="/code", tags=["code"])


class CodeSubmitRequest(BaseModel):
    problem_id: int = Field(..., alias="problemId")
    code: str
    language_id: int = Field(..., alias="languageId")
    is_test_run: bool = Field(..., alias="isTestRun")

    model_config = ConfigDict(populate_by_name=True)


@router.post("/submit")
def submit_code(
    request: CodeSubmitRequest,
    user_id: int = Header(..., alias="X-User-Id"),
) -> dict[str, Any]:
    with db_conn() as conn:
        service = CodeExecutionService(conn, judge=build_judge_client())
        return service.submit(
            user_id,
            request.problem_id,
            request.code,
            request.language_id,
            is_test_run=request.is_test_run,
        )


__all__ = ["router"]

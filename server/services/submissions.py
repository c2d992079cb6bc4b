"""SQL helpers for questions, test cases and submission records."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from server.services.models import AnswerOption, Question, TestCase

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc
PROGRAMMING_TYPE = "Programming"


@dataclass
class SubmissionRecord:
    """One persisted answer attempt, written to the ``response`` table."""

    user_id: int
    problem_id: int
    is_correct: bool
    points_earned: float
    points_possible: float
    code: Optional[str] = None
    user_answer: Optional[str] = None
    category: Optional[str] = None
    topic: Optional[str] = None
    id: Optional[int] = None


def start_of_utc_day(now: dt.datetime | None = None) -> dt.datetime:
    current = now or dt.datetime.now(tz=UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    current = current.astimezone(UTC)
    return current.replace(hour=0, minute=0, second=0, microsecond=0)


def _as_float(value: Any) -> float:
    # NUMERIC columns come back as Decimal
    return float(value) if value is not None else 0.0


def load_question(conn, question_id: int) -> Question | None:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT id, type, points_possible, category, subcategory
            FROM question
            WHERE id = %s
            """,
            (question_id,),
        )
        row = cur.fetchone()
    if not row:
        return None
    return Question(
        id=int(row[0]),
        type=str(row[1]),
        points_possible=_as_float(row[2]),
        category=row[3],
        topic=row[4],
    )


def load_answer_options(conn, question_id: int) -> List[AnswerOption]:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT text, is_correct_answer, rank, placement
            FROM answer_option
            WHERE question_id = %s
            ORDER BY id
            """,
            (question_id,),
        )
        rows = cur.fetchall()
    return [
        AnswerOption(
            text=row[0] or "",
            is_correct=bool(row[1]),
            rank=int(row[2]) if row[2] is not None else None,
            placement=row[3],
        )
        for row in rows
    ]


def load_test_cases(conn, question_id: int) -> List[TestCase]:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT id, input, expected_output
            FROM test_case
            WHERE question_id = %s
            ORDER BY id
            """,
            (question_id,),
        )
        rows = cur.fetchall()
    return [
        TestCase(id=int(row[0]), input=row[1] or "", expected_output=row[2] or "")
        for row in rows
    ]


def count_daily_code_submissions(conn, user_id: int, *, now: dt.datetime | None = None) -> int:
    """Count today's (UTC) programming submissions made by *user_id*."""

    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT COUNT(*)
            FROM response r
            JOIN question q ON q.id = r.problem_id
            WHERE r.user_id = %s AND q.type = %s AND r.created_at >= %s
            """,
            (user_id, PROGRAMMING_TYPE, start_of_utc_day(now)),
        )
        row = cur.fetchone()
    return int(row[0]) if row else 0


def count_daily_test_runs(
    conn, user_id: int, question_id: int, *, now: dt.datetime | None = None
) -> int:
    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT COUNT(*)
            FROM test_run
            WHERE user_id = %s AND question_id = %s AND created_at >= %s
            """,
            (user_id, question_id, start_of_utc_day(now)),
        )
        row = cur.fetchone()
    return int(row[0]) if row else 0


def insert_submission_record(conn, record: SubmissionRecord) -> int:
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO response (user_id, problem_id, code, user_answer, is_correct, points_earned, points_possible, category, topic, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
            RETURNING id
            """,
            (
                record.user_id,
                record.problem_id,
                record.code,
                record.user_answer,
                record.is_correct,
                record.points_earned,
                record.points_possible,
                record.category,
                record.topic,
            ),
        )
        row = cur.fetchone()
    record.id = int(row[0]) if row else None
    logger.info(
        "Stored submission %s for user %s on question %s (%s/%s points)",
        record.id,
        record.user_id,
        record.problem_id,
        record.points_earned,
        record.points_possible,
    )
    return record.id


def record_test_run(conn, user_id: int, question_id: int) -> int | None:
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO test_run (user_id, question_id, created_at)
            VALUES (%s, %s, NOW())
            RETURNING id
            """,
            (user_id, question_id),
        )
        row = cur.fetchone()
    return int(row[0]) if row else None


__all__ = [
    "PROGRAMMING_TYPE",
    "SubmissionRecord",
    "count_daily_code_submissions",
    "count_daily_test_runs",
    "insert_submission_record",
    "load_answer_options",
    "load_question",
    "load_test_cases",
    "record_test_run",
    "start_of_utc_day",
]

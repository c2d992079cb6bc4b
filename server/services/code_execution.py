"""Run submitted code against a problem's test cases and score the result."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Sequence

from server.core.config import CodeLimits, load_code_limits
from server.core.db import user_submission_lock
from server.core.errors import (
    JudgeTimeoutError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from server.services.answers import serialize_answer
from server.services.judge import (
    LANGUAGE_NAMES,
    JudgeClient,
    JudgeOutcome,
    StatusCategory,
    build_judge_client,
)
from server.services.models import Question, TestCase
from server.services.submissions import (
    PROGRAMMING_TYPE,
    SubmissionRecord,
    count_daily_code_submissions,
    count_daily_test_runs,
    insert_submission_record,
    load_question,
    load_test_cases,
    record_test_run,
)

logger = logging.getLogger(__name__)

EXECUTION_FAILED_MESSAGE = "Your code failed to execute. Please check for errors."
TEST_RUN_LIMIT_MESSAGE = "Daily test run limit for this question exceeded."


class PollCancelled(Exception):
    """Raised inside a poll loop once a sibling loop has failed."""


def poll_until_complete(
    judge: JudgeClient,
    token: str,
    *,
    max_attempts: int,
    delay_seconds: float,
    cancel_event: threading.Event | None = None,
) -> JudgeOutcome:
    """Poll *token* until the judge reports a terminal status.

    Sleeps on *cancel_event* between attempts so a cancelled loop wakes
    immediately.  Raises :class:`JudgeTimeoutError` once *max_attempts* polls
    have all come back pending.
    """

    event = cancel_event or threading.Event()
    for attempt in range(1, max_attempts + 1):
        if event.is_set():
            raise PollCancelled(token)
        outcome = judge.poll_once(token)
        if not outcome.is_pending:
            logger.debug("Token %s finished after %s attempt(s): %s", token, attempt, outcome.status_description)
            return outcome
        if attempt < max_attempts and event.wait(delay_seconds):
            raise PollCancelled(token)
    raise JudgeTimeoutError(f"Polling token {token} exceeded {max_attempts} attempts")


def poll_all(
    judge: JudgeClient,
    tokens: Sequence[str],
    limits: CodeLimits,
) -> List[JudgeOutcome]:
    """Poll every token concurrently and return outcomes in token order.

    The first failing loop cancels the rest and its exception is re-raised.
    """

    if not tokens:
        return []

    cancel_event = threading.Event()
    # one thread per token so every loop starts polling at once
    with ThreadPoolExecutor(max_workers=len(tokens), thread_name_prefix="judge-poll") as executor:
        futures = [
            executor.submit(
                poll_until_complete,
                judge,
                token,
                max_attempts=limits.poll_max_attempts,
                delay_seconds=limits.poll_delay_seconds,
                cancel_event=cancel_event,
            )
            for token in tokens
        ]
        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failure: Optional[BaseException] = None
        for future in futures:
            if future.done() and not future.cancelled() and future.exception() is not None:
                failure = future.exception()
                break
        if failure is not None:
            cancel_event.set()
            for future in pending:
                future.cancel()
            if pending:
                logger.warning("Cancelling %s sibling poll loop(s) after failure: %s", len(pending), failure)
            raise failure
    return [future.result() for future in futures]


def outcome_passed(outcome: JudgeOutcome, case: TestCase) -> bool:
    if outcome.category not in (StatusCategory.ACCEPTED, StatusCategory.WRONG_ANSWER):
        return False
    return (outcome.stdout or "").strip() == (case.expected_output or "").strip()


def first_error(outcomes: Sequence[JudgeOutcome]) -> JudgeOutcome | None:
    for outcome in outcomes:
        if outcome.is_error:
            return outcome
    return None


def failure_report(outcome: JudgeOutcome, *, is_test_run: bool) -> Dict[str, Any]:
    return {
        "success": False,
        "isTestRun": is_test_run,
        "status": outcome.status_description,
        "error": outcome.stderr or outcome.compile_output or "Execution failed",
        "message": EXECUTION_FAILED_MESSAGE,
    }


def aggregate_results(
    outcomes: Sequence[JudgeOutcome],
    test_cases: Sequence[TestCase],
    points_possible: float,
) -> Dict[str, Any]:
    """Compare each outcome with its test case and total the score."""

    test_results: List[Dict[str, Any]] = []
    passed_tests = 0
    for outcome, case in zip(outcomes, test_cases):
        passed = outcome_passed(outcome, case)
        if passed:
            passed_tests += 1
        test_results.append(
            {
                "testCaseId": case.id,
                "input": case.input,
                "expectedOutput": case.expected_output,
                "actualOutput": (outcome.stdout or "").strip() or None,
                "passed": passed,
                "status": outcome.status_description,
                "executionTime": outcome.time_ms,
                "memory": outcome.memory_kb,
                "error": outcome.stderr or outcome.compile_output or None,
            }
        )

    total_tests = len(test_cases)
    score = passed_tests / total_tests if total_tests else 0.0
    return {
        "allPassed": total_tests > 0 and passed_tests == total_tests,
        "passedTests": passed_tests,
        "totalTests": total_tests,
        "pointsEarned": score * points_possible,
        "testResults": test_results,
    }


class CodeExecutionService:
    """Validate, execute and grade one code submission."""

    def __init__(
        self,
        conn,
        *,
        judge: JudgeClient | None = None,
        limits: CodeLimits | None = None,
    ) -> None:
        self.conn = conn
        self._judge = judge
        self.limits = limits or load_code_limits()

    @property
    def judge(self) -> JudgeClient:
        if self._judge is None:
            self._judge = build_judge_client()
        return self._judge

    # validation ---------------------------------------------------------------

    def _validate(self, problem_id: Any, code: Any, language_id: Any) -> None:
        if problem_id is None or language_id is None or not isinstance(code, str) or not code.strip():
            raise ValidationError("Empty problemId, code, or languageId")
        size = len(code.encode("utf-8"))
        if size > self.limits.max_code_bytes:
            raise ValidationError(
                f"Code submission is {size} bytes, exceeds {self.limits.max_code_bytes}",
                "Code submission too long.",
            )
        if language_id not in LANGUAGE_NAMES:
            raise ValidationError(
                f"Unsupported languageId: {language_id}",
                "Unsupported programming language.",
            )

    def _lookup(self, problem_id: int) -> tuple[Question, List[TestCase]]:
        question = load_question(self.conn, problem_id)
        if question is None or question.type != PROGRAMMING_TYPE:
            raise NotFoundError(
                f"No programming question found: id {problem_id}",
                "Programming question not found.",
            )
        test_cases = load_test_cases(self.conn, problem_id)
        if not test_cases:
            raise NotFoundError(
                f"No test cases found for problem {problem_id}",
                "Test cases not found.",
            )
        return question, test_cases

    def _check_rate_limit(self, user_id: int, problem_id: int, *, is_test_run: bool) -> None:
        if is_test_run:
            used = count_daily_test_runs(self.conn, user_id, problem_id)
            if used >= self.limits.max_test_runs_per_problem:
                logger.warning("User %s hit the test run limit on problem %s (%s)", user_id, problem_id, used)
                raise RateLimitError(
                    f"User {user_id} has {used} test runs today on problem {problem_id}",
                    TEST_RUN_LIMIT_MESSAGE,
                )
            return
        used = count_daily_code_submissions(self.conn, user_id)
        if used >= self.limits.max_submissions_per_day:
            logger.warning("User %s hit the daily submission limit (%s)", user_id, used)
            raise RateLimitError(f"User {user_id} has {used} daily submissions, exceeds max")

    # execution ----------------------------------------------------------------

    def _execute(self, code: str, language_id: int, test_cases: Sequence[TestCase]) -> List[JudgeOutcome]:
        tokens = self.judge.submit_batch(code, language_id, test_cases)
        try:
            return poll_all(self.judge, tokens, self.limits)
        except JudgeTimeoutError:
            logger.warning("Judge polling timed out for %s token(s)", len(tokens))
            raise

    def submit(
        self,
        user_id: int,
        problem_id: int,
        code: str,
        language_id: int,
        *,
        is_test_run: bool = False,
    ) -> Dict[str, Any]:
        """Run *code* for *user_id* and return the response body."""

        self._validate(problem_id, code, language_id)
        question, test_cases = self._lookup(problem_id)
        logger.info(
            "User %s submitting %s for problem %s (%s test case(s), test run=%s)",
            user_id,
            LANGUAGE_NAMES[language_id],
            problem_id,
            len(test_cases),
            is_test_run,
        )

        with user_submission_lock(self.conn, user_id):
            self._check_rate_limit(user_id, problem_id, is_test_run=is_test_run)
            cases = test_cases[:1] if is_test_run else test_cases
            outcomes = self._execute(code, language_id, cases)

            if is_test_run:
                record_test_run(self.conn, user_id, problem_id)

            error = first_error(outcomes)
            if error is not None:
                logger.info("Problem %s submission failed to execute: %s", problem_id, error.status_description)
                return failure_report(error, is_test_run=is_test_run)

            if is_test_run:
                outcome = outcomes[0]
                return {
                    "success": True,
                    "isTestRun": True,
                    "status": outcome.status_description,
                    "stdout": (outcome.stdout or "").strip() or None,
                    "stderr": outcome.stderr,
                    "executionTime": outcome.time_ms,
                    "memory": outcome.memory_kb,
                }

            summary = aggregate_results(outcomes, cases, question.points_possible)
            insert_submission_record(
                self.conn,
                SubmissionRecord(
                    user_id=user_id,
                    problem_id=problem_id,
                    code=code,
                    user_answer=serialize_answer(
                        PROGRAMMING_TYPE, code, language=LANGUAGE_NAMES[language_id]
                    ),
                    is_correct=summary["allPassed"],
                    points_earned=summary["pointsEarned"],
                    points_possible=question.points_possible,
                    category=question.category,
                    topic=question.topic,
                ),
            )

        logger.info(
            "Problem %s: %s/%s test cases passed for user %s",
            problem_id,
            summary["passedTests"],
            summary["totalTests"],
            user_id,
        )
        return {
            "success": True,
            "isTestRun": False,
            "allPassed": summary["allPassed"],
            "passedTests": summary["passedTests"],
            "totalTests": summary["totalTests"],
            "pointsEarned": summary["pointsEarned"],
            "pointsPossible": question.points_possible,
            "testResults": summary["testResults"],
        }

    def daily_usage(self, user_id: int) -> Dict[str, int]:
        used = count_daily_code_submissions(self.conn, user_id)
        return {
            "used": used,
            "limit": self.limits.max_submissions_per_day,
            "remaining": max(0, self.limits.max_submissions_per_day - used),
        }


__all__ = [
    "CodeExecutionService",
    "PollCancelled",
    "aggregate_results",
    "failure_report",
    "first_error",
    "outcome_passed",
    "poll_all",
    "poll_until_complete",
]

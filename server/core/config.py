"""Environment-driven limits for code execution and the judge client."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_MAX_CODE_BYTES = 10_000
DEFAULT_MAX_SUBMISSIONS_PER_DAY = 50
DEFAULT_MAX_TEST_RUNS_PER_PROBLEM = 20
DEFAULT_POLL_MAX_ATTEMPTS = 10
DEFAULT_POLL_DELAY_MS = 1000

DEFAULT_JUDGE_API_URL = "https://judge0-ce.p.rapidapi.com"
DEFAULT_JUDGE_API_HOST = "judge0-ce.p.rapidapi.com"
DEFAULT_JUDGE_TIMEOUT = 10.0


def _load_int(name: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.debug("Invalid %s value %s; defaulting to %s", name, value, default)
        return default
    return max(minimum, parsed)


def _load_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.debug("Invalid %s value %s; defaulting to %s", name, value, default)
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True)
class CodeLimits:
    """Resource limits enforced before code reaches the judge."""

    max_code_bytes: int = DEFAULT_MAX_CODE_BYTES
    max_submissions_per_day: int = DEFAULT_MAX_SUBMISSIONS_PER_DAY
    max_test_runs_per_problem: int = DEFAULT_MAX_TEST_RUNS_PER_PROBLEM
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    poll_delay_ms: int = DEFAULT_POLL_DELAY_MS

    @property
    def poll_delay_seconds(self) -> float:
        return self.poll_delay_ms / 1000.0


@dataclass(frozen=True)
class JudgeSettings:
    api_url: str = DEFAULT_JUDGE_API_URL
    api_host: str = DEFAULT_JUDGE_API_HOST
    api_key: str | None = None
    timeout: float = DEFAULT_JUDGE_TIMEOUT


def load_code_limits() -> CodeLimits:
    """Return the limits currently configured in the environment."""

    return CodeLimits(
        max_code_bytes=_load_int("MAX_CODE_BYTES", DEFAULT_MAX_CODE_BYTES, minimum=1),
        max_submissions_per_day=_load_int(
            "MAX_SUBMISSIONS_PER_DAY", DEFAULT_MAX_SUBMISSIONS_PER_DAY
        ),
        max_test_runs_per_problem=_load_int(
            "MAX_TEST_RUNS_PER_PROBLEM", DEFAULT_MAX_TEST_RUNS_PER_PROBLEM
        ),
        poll_max_attempts=_load_int(
            "JUDGE_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS, minimum=1
        ),
        poll_delay_ms=_load_int("JUDGE_POLL_DELAY_MS", DEFAULT_POLL_DELAY_MS),
    )


def load_judge_settings() -> JudgeSettings:
    api_key = (os.getenv("RAPIDAPI_KEY") or "").strip() or None
    if api_key is None:
        logger.warning("RAPIDAPI_KEY is not set; code execution will fail")
    return JudgeSettings(
        api_url=(os.getenv("JUDGE_API_URL") or DEFAULT_JUDGE_API_URL).rstrip("/"),
        api_host=os.getenv("JUDGE_API_HOST") or DEFAULT_JUDGE_API_HOST,
        api_key=api_key,
        timeout=_load_float("JUDGE_REQUEST_TIMEOUT", DEFAULT_JUDGE_TIMEOUT),
    )


__all__ = [
    "CodeLimits",
    "JudgeSettings",
    "load_code_limits",
    "load_judge_settings",
]

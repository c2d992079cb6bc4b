"""Client for the external code-execution judge (a Judge0-compatible API)."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from server.core.config import JudgeSettings, load_judge_settings
from server.core.errors import ExternalServiceError
from server.services.models import TestCase

logger = logging.getLogger(__name__)

LANGUAGE_IDS: Dict[str, int] = {
    "C": 50,
    "CPP": 54,
    "JAVA": 62,
    "PYTHON": 71,
}
LANGUAGE_NAMES: Dict[int, str] = {value: key for key, value in LANGUAGE_IDS.items()}

STATUS_IDS: Dict[str, int] = {
    "IN_QUEUE": 1,
    "PROCESSING": 2,
    "ACCEPTED": 3,
    "WRONG_ANSWER": 4,
    "TIME_LIMIT_EXCEEDED": 5,
    "COMPILATION_ERROR": 6,
    "RUNTIME_ERROR_SIGSEGV": 7,
    "RUNTIME_ERROR_SIGXFSZ": 8,
    "RUNTIME_ERROR_SIGFPE": 9,
    "RUNTIME_ERROR_SIGABRT": 10,
    "RUNTIME_ERROR_NZEC": 11,
    "RUNTIME_ERROR_OTHER": 12,
    "INTERNAL_ERROR": 13,
    "EXEC_FORMAT_ERROR": 14,
}

UNAVAILABLE_MESSAGE = "Code execution service unavailable."


class StatusCategory(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong_answer"
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    OTHER = "other"


def categorize_status(status_id: int | None) -> StatusCategory:
    if status_id in (STATUS_IDS["IN_QUEUE"], STATUS_IDS["PROCESSING"]):
        return StatusCategory.PENDING
    if status_id == STATUS_IDS["ACCEPTED"]:
        return StatusCategory.ACCEPTED
    if status_id == STATUS_IDS["WRONG_ANSWER"]:
        return StatusCategory.WRONG_ANSWER
    if status_id == STATUS_IDS["COMPILATION_ERROR"]:
        return StatusCategory.COMPILE_ERROR
    if status_id is not None and 7 <= status_id <= 12:
        return StatusCategory.RUNTIME_ERROR
    return StatusCategory.OTHER


def resolve_language(value: str | int) -> int | None:
    """Map a language name or numeric id onto a supported judge language id."""

    if isinstance(value, int):
        return value if value in LANGUAGE_NAMES else None
    text = str(value).strip()
    if text.isdigit():
        return resolve_language(int(text))
    key = text.upper().replace("+", "P")
    return LANGUAGE_IDS.get(key)


@dataclass(frozen=True)
class JudgeOutcome:
    """One polled judge result."""

    token: str
    status_id: int | None
    status_description: str
    category: StatusCategory
    stdout: str | None = None
    stderr: str | None = None
    compile_output: str | None = None
    time_ms: float | None = None
    memory_kb: int | None = None

    @property
    def is_pending(self) -> bool:
        return self.category is StatusCategory.PENDING

    @property
    def is_error(self) -> bool:
        return self.category in (StatusCategory.COMPILE_ERROR, StatusCategory.RUNTIME_ERROR)

    @classmethod
    def from_payload(cls, token: str, payload: Dict[str, Any]) -> "JudgeOutcome":
        status = payload.get("status") or {}
        status_id = status.get("id")
        try:
            status_id = int(status_id) if status_id is not None else None
        except (TypeError, ValueError):
            status_id = None

        time_ms: Optional[float] = None
        raw_time = payload.get("time")
        if raw_time not in (None, ""):
            try:
                time_ms = round(float(raw_time) * 1000, 3)
            except (TypeError, ValueError):
                logger.debug("Ignoring unparsable judge time %r for %s", raw_time, token)

        memory = payload.get("memory")
        try:
            memory_kb = int(memory) if memory is not None else None
        except (TypeError, ValueError):
            memory_kb = None

        return cls(
            token=token,
            status_id=status_id,
            status_description=str(status.get("description") or "Unknown"),
            category=categorize_status(status_id),
            stdout=payload.get("stdout"),
            stderr=payload.get("stderr"),
            compile_output=payload.get("compile_output"),
            time_ms=time_ms,
            memory_kb=memory_kb,
        )


class JudgeClient:
    """Thin wrapper around the judge's batch submission endpoints.

    Poll loops call the client from several threads at once, so unless a
    *session* is passed in each thread gets its own session from
    *session_factory*.
    """

    def __init__(
        self,
        settings: JudgeSettings | None = None,
        *,
        session: Optional[requests.Session] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.settings = settings or load_judge_settings()
        self._shared_session = session
        self._session_factory = session_factory
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            self._local.session = session
        return session

    def _headers(self) -> Dict[str, str]:
        if not self.settings.api_key:
            raise ExternalServiceError("Judge API key is not configured", UNAVAILABLE_MESSAGE)
        return {
            "Content-Type": "application/json",
            "X-RapidAPI-Key": self.settings.api_key,
            "X-RapidAPI-Host": self.settings.api_host,
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.settings.api_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.settings.timeout,
                **kwargs,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Judge request {method} {path} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"Judge returned a non-JSON body for {method} {path}") from exc

    def submit_batch(
        self,
        source_code: str,
        language_id: int,
        test_cases: Sequence[TestCase],
    ) -> List[str]:
        """Submit one run per test case and return tokens in test-case order."""

        body = {
            "submissions": [
                {
                    "source_code": source_code,
                    "language_id": language_id,
                    "stdin": case.input,
                    "expected_output": case.expected_output,
                }
                for case in test_cases
            ]
        }
        data = self._request("POST", "/submissions/batch", json=body)
        if not isinstance(data, list):
            raise ExternalServiceError(f"Unexpected batch response: {data!r}")

        tokens: List[str] = []
        for entry in data:
            token = entry.get("token") if isinstance(entry, dict) else None
            if not token:
                raise ExternalServiceError(f"Batch entry without token: {entry!r}")
            tokens.append(str(token))
        if len(tokens) != len(test_cases):
            raise ExternalServiceError(
                f"Judge returned {len(tokens)} tokens for {len(test_cases)} test cases"
            )
        logger.debug("Submitted %s runs to judge (language %s)", len(tokens), language_id)
        return tokens

    def poll_once(self, token: str) -> JudgeOutcome:
        data = self._request("GET", f"/submissions/{token}")
        if not isinstance(data, dict):
            raise ExternalServiceError(f"Unexpected submission payload for {token}: {data!r}")
        return JudgeOutcome.from_payload(token, data)


def build_judge_client() -> JudgeClient:
    return JudgeClient()


__all__ = [
    "JudgeClient",
    "JudgeOutcome",
    "LANGUAGE_IDS",
    "LANGUAGE_NAMES",
    "STATUS_IDS",
    "StatusCategory",
    "build_judge_client",
    "categorize_status",
    "resolve_language",
]

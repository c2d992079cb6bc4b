"""Exception types raised by the grading services.

Each error carries two messages: the developer-facing ``str(exc)`` which is
logged, and ``user_message`` which is the only text returned to API callers.
"""

from __future__ import annotations


class GradingError(Exception):
    """Base class for failures that map onto an HTTP response."""

    status_code = 500
    default_user_message = "Internal server error"

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ConfigurationError(GradingError):
    """Answer data for a question is malformed (an upstream data bug)."""

    status_code = 500


class ValidationError(GradingError):
    status_code = 400
    default_user_message = "Missing required fields."


class UnsupportedTypeError(GradingError):
    status_code = 400
    default_user_message = "Unsupported question type"


class NotFoundError(GradingError):
    status_code = 404
    default_user_message = "Not found."


class RateLimitError(GradingError):
    status_code = 429
    default_user_message = "Daily submission limit exceeded."


class ExternalServiceError(GradingError):
    """The code-execution judge could not be reached or answered badly."""

    status_code = 502
    default_user_message = "Code submission failed."


class JudgeTimeoutError(GradingError, TimeoutError):
    """Polling the judge exceeded the configured attempt budget."""

    status_code = 408
    default_user_message = "Code execution timed out."


__all__ = [
    "ConfigurationError",
    "ExternalServiceError",
    "GradingError",
    "JudgeTimeoutError",
    "NotFoundError",
    "RateLimitError",
    "UnsupportedTypeError",
    "ValidationError",
]

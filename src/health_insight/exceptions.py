"""Exceptions raised by the health insight pipeline.

Every failure surfaced to callers is a ``HealthInsightError`` whose ``str()``
is a single line suitable for display. Provider failures keep the original
exception on ``__cause__``.
"""  # noqa: D415

from __future__ import annotations


class HealthInsightError(Exception):
    """Base exception for health insight errors"""  # noqa: D415


class ConfigurationError(HealthInsightError):
    """Raised when settings cannot be resolved or validated"""  # noqa: D415


class MissingKeyError(ConfigurationError):
    """Raised when no API key is configured for an operation"""  # noqa: D415


class InputError(HealthInsightError):
    """Raised when a request carries no usable payload"""  # noqa: D415


class ProviderError(HealthInsightError):
    """Raised when the generative provider rejects or fails a call.

    ``status`` is the HTTP-style status reported by the provider, or None when
    the failure carried no status (timeouts, transport errors).
    """

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(_single_line(message))
        self.status = status


class ServiceUnavailableError(ProviderError):
    """Raised when server errors persist after every retry attempt"""  # noqa: D415

    def __init__(self, message: str | None = None, *, status: int | None = None):
        super().__init__(message or "Could not reach the AI service.", status=status)


class ResponseFormatError(HealthInsightError):
    """Raised when the provider's response is not the expected structured format"""  # noqa: D415

    def __init__(self, operation: str, detail: str | None = None):
        message = f"Unexpected AI response format for {operation}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(_single_line(message))
        self.operation = operation


class IncompleteResponseError(HealthInsightError):
    """Raised when a parsed response is missing required fields"""  # noqa: D415

    def __init__(self, operation: str, fields: tuple[str, ...]):
        joined = ", ".join(fields)
        super().__init__(f"Incomplete AI response for {operation}: missing or invalid {joined}.")
        self.operation = operation
        self.fields = fields


def _single_line(message: str) -> str:
    return " ".join(str(message).split())

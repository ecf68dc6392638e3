"""
Exceptions and error kinds for the answer draft service.

Backend adapters raise `BackendError` (or one of its subclasses) for a
single failed attempt. The fetcher absorbs those into a structured result,
so only `ConfigurationError` reaches the API layer as an exception.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Failure classification surfaced to callers."""

    INVALID_INPUT = "InvalidInput"
    CONFIGURATION_ERROR = "ConfigurationError"
    TIMEOUT = "Timeout"
    BACKEND_ERROR = "BackendError"
    ALL_BACKENDS_EXHAUSTED = "AllBackendsExhausted"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.CONFIGURATION_ERROR: 500,
    ErrorKind.TIMEOUT: 408,
    ErrorKind.BACKEND_ERROR: 503,
    ErrorKind.ALL_BACKENDS_EXHAUSTED: 503,
}


class DraftServiceError(Exception):
    """
    Base exception for the service.

    Attributes:
        message: Human-readable description of the error.
        details: Optional additional context for debugging.
    """

    kind: ErrorKind = ErrorKind.ALL_BACKENDS_EXHAUSTED

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DraftServiceError):
    """
    A required setting (the provider API key) is missing.

    The message never includes the credential itself.
    """

    kind = ErrorKind.CONFIGURATION_ERROR


class BackendError(DraftServiceError):
    """
    A single candidate attempt failed.

    Attributes:
        model: Name of the model that was tried.
        status_code: HTTP status returned by the provider, if any.
    """

    kind = ErrorKind.BACKEND_ERROR

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        self.model = model
        self.status_code = status_code

        enhanced_message = f"[Backend] {message}"
        if model:
            enhanced_message = f"{enhanced_message} (model: {model})"
        if status_code is not None:
            enhanced_message = f"{enhanced_message} (status: {status_code})"

        super().__init__(enhanced_message, details)


class BackendTimeoutError(BackendError):
    """The provider did not answer within the attempt's timeout."""

    kind = ErrorKind.TIMEOUT


class MalformedResponseError(BackendError):
    """The provider answered successfully but the payload had no usable reply."""

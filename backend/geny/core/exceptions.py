"""Custom exceptions for the application."""

from __future__ import annotations


class GenyError(Exception):
    """Base class for assistant pipeline errors."""

    pass


class GenerationFailed(GenyError):
    """Raised when the language model endpoint fails or returns an error status."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class GenerationTimedOut(GenerationFailed):
    """Raised when an asynchronous model run does not finish within the polling budget."""

    pass


class ParseFailed(GenyError):
    """Raised when model output does not contain a usable JSON object."""

    pass


class ExecutionFailed(GenyError):
    """Raised when the generated query is rejected or fails in the database."""

    pass


class ConfigUnavailable(GenyError):
    """Raised when the persisted prompt configuration cannot be read or written."""

    pass


class ConfigurationError(GenyError):
    """Raised when required settings (credentials, endpoints) are missing."""

    pass


class ValidationError(GenyError):
    """Raised when input validation fails."""

    pass

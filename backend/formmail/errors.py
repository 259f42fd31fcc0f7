"""
Exceptions raised inside the dispatch pipeline.

Validation failures are not exceptions: the validator returns them as values
(see services.validator.ValidationResult).
"""


class FormMailError(Exception):
    """Base class for errors raised by this backend."""


class ConfigurationError(FormMailError):
    """Raised when mail credentials are required but missing."""


class TransportError(FormMailError):
    """Raised when the mail service rejects or cannot receive a message."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

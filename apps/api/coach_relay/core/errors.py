"""Exception taxonomy shared by the relay services and the HTTP layer."""
from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for errors the relay surfaces to its caller."""


class ValidationError(RelayError):
    """Raised when a request is rejected before any upstream call."""


class ConfigurationError(RelayError):
    """Raised when a required credential or identifier is not configured."""


class SpeechProviderError(RelayError):
    """Raised when the speech provider fails or answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

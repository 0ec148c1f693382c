"""Turn-fatal errors raised before a provider stream starts.

These are turned into the stream's terminal error frame by the SSE
emitter; they never reach the client as an HTTP error.
"""

from __future__ import annotations

from chatrelay.core.models import (
    ERROR_PROVIDER_NOT_CONFIGURED,
    ERROR_UNKNOWN_PROVIDER,
)


class ProviderError(Exception):
    """Base class for errors that end a turn with an error frame."""

    code = "PROVIDER_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class ProviderNotConfigured(ProviderError):
    """Raised when a provider's credential or endpoint is missing."""

    code = ERROR_PROVIDER_NOT_CONFIGURED


class UnknownProvider(ProviderError):
    """Raised when no adapter is registered for a provider tag."""

    code = ERROR_UNKNOWN_PROVIDER

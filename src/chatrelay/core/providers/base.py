"""Provider adapter base class.

Every backend adapter turns a :class:`TurnPrompt` into one
:class:`ProviderRequest` and decodes the backend's response into
:data:`TokenDelta` values.  :meth:`ProviderAdapter.stream` owns the
per-turn state machine::

    IDLE -> SENDING -> STREAMING -> DONE
                   \\-> FAILED

and guarantees exactly one terminal delta, whatever the backend does.
Subclasses implement :meth:`build_request` and :meth:`_stream`.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

import httpx

from chatrelay.core.errors import ProviderNotConfigured
from chatrelay.core.metrics import MALFORMED_FRAMES_TOTAL, observe_provider_stream
from chatrelay.core.models import (
    ERROR_AUTH_FAILED,
    ERROR_BAD_REQUEST,
    ERROR_INCOMPLETE_STREAM,
    ERROR_NOT_FOUND,
    ERROR_RATE_LIMITED,
    ERROR_UPSTREAM,
    ERROR_UPSTREAM_TIMEOUT,
    ERROR_UPSTREAM_UNREACHABLE,
    ErrorDelta,
    HistoryMessage,
    PersonaDecision,
    TokenDelta,
    TurnPrompt,
    is_terminal,
)
from chatrelay.infra.telemetry import (
    ATTR_PROVIDER_OUTCOME,
    ATTR_PROVIDER_STATUS,
    ATTR_TURN_MODEL,
    ATTR_TURN_PROVIDER,
    SPAN_PROVIDER_STREAM,
    tracer,
)

logger = logging.getLogger(__name__)

# Longest slice of a backend error body quoted back to the caller.
ERROR_DETAIL_MAX_CHARS = 300


class AdapterState(enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ProviderRequest:
    """Wire request for one turn; never reused."""

    model: str
    url: str
    payload: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 120.0
    persona: PersonaDecision = field(default_factory=PersonaDecision)


def error_detail(body: str) -> str:
    """Pull a readable message out of a backend error body."""
    body = body.strip()
    if not body:
        return ""
    try:
        data = json.loads(body)
    except ValueError:
        return body[:ERROR_DETAIL_MAX_CHARS]
    if isinstance(data, dict):
        error = data.get("error", data)
        if isinstance(error, dict):
            error = error.get("message") or error.get("status") or error
        if isinstance(error, str):
            return error[:ERROR_DETAIL_MAX_CHARS]
    return body[:ERROR_DETAIL_MAX_CHARS]


def describe_status(provider: str, status: int, detail: str = "") -> ErrorDelta:
    """Map a non-success backend status to a terminal error delta."""
    if status in (401, 403):
        code, message = ERROR_AUTH_FAILED, f"{provider} authentication failed; check the API key"
    elif status == 429:
        code, message = ERROR_RATE_LIMITED, f"{provider} rate limit or quota exceeded; try again later"
    elif status == 400:
        code, message = ERROR_BAD_REQUEST, f"{provider} rejected the request as malformed"
    elif status == 404:
        code, message = ERROR_NOT_FOUND, f"{provider} could not find the requested model"
    else:
        code, message = ERROR_UPSTREAM, f"{provider} returned HTTP {status}"
    if detail:
        message = f"{message}: {detail}"
    return ErrorDelta(error=message, code=code)


class ProviderAdapter(ABC):
    """One backend's wire protocol behind the common delta stream."""

    #: Provider tag, as returned by the router.
    name: str
    #: Human-readable backend name used in error messages.
    display_name: str

    def __init__(self, client: httpx.AsyncClient, *, history_limit: int) -> None:
        self._client = client
        self.history_limit = history_limit

    def window(self, history: Sequence[HistoryMessage]) -> list[HistoryMessage]:
        """Most recent ``history_limit`` entries, oldest first."""
        if self.history_limit <= 0:
            return []
        return list(history[-self.history_limit :])

    def check_configured(self) -> None:
        """Raise :class:`ProviderNotConfigured` when the backend cannot be used."""

    def _require(self, value: str, setting: str) -> None:
        if not value:
            raise ProviderNotConfigured(
                f"{self.display_name} is not configured: set {setting} to use this model"
            )

    @abstractmethod
    def build_request(self, prompt: TurnPrompt) -> ProviderRequest:
        """Render *prompt* into this backend's wire request."""

    @abstractmethod
    def _stream(self, request: ProviderRequest) -> AsyncIterator[TokenDelta]:
        """Send *request* and decode the backend response."""

    def status_error(self, status: int, body: str) -> ErrorDelta:
        return describe_status(self.display_name, status, error_detail(body))

    async def read_error(self, response: httpx.Response) -> ErrorDelta:
        body = (await response.aread()).decode("utf-8", errors="replace")
        logger.warning(
            "%s returned HTTP %d: %s",
            self.display_name,
            response.status_code,
            body[:ERROR_DETAIL_MAX_CHARS],
        )
        return self.status_error(response.status_code, body)

    def malformed(self, line: str) -> None:
        """Record a skipped backend line."""
        MALFORMED_FRAMES_TOTAL.labels(provider=self.name).inc()
        logger.warning("Skipping malformed %s stream line: %.200s", self.display_name, line)

    def stream(self, request: ProviderRequest) -> AsyncIterator[TokenDelta]:
        """Lazily yield the turn's deltas, ending with exactly one terminal delta."""
        return observe_provider_stream(self.name)(self._run)(request)

    async def _run(self, request: ProviderRequest) -> AsyncIterator[TokenDelta]:
        state = AdapterState.IDLE
        with tracer.start_as_current_span(SPAN_PROVIDER_STREAM) as span:
            span.set_attribute(ATTR_TURN_PROVIDER, self.name)
            span.set_attribute(ATTR_TURN_MODEL, request.model)
            state = AdapterState.SENDING
            logger.info("Sending %s request for model %s", self.display_name, request.model)

            terminal: TokenDelta | None = None
            try:
                async with aclosing(self._stream(request)) as deltas:
                    async for delta in deltas:
                        if is_terminal(delta):
                            terminal = delta
                            break
                        state = AdapterState.STREAMING
                        if delta.content:
                            yield delta
            except httpx.TimeoutException:
                logger.warning("%s timed out after %.0fs", self.display_name, request.timeout)
                terminal = ErrorDelta(
                    error=f"{self.display_name} did not respond within {request.timeout:.0f} seconds",
                    code=ERROR_UPSTREAM_TIMEOUT,
                )
            except httpx.HTTPError as exc:
                logger.warning("%s request failed: %s", self.display_name, exc)
                terminal = ErrorDelta(
                    error=f"Could not reach {self.display_name}: {exc}",
                    code=ERROR_UPSTREAM_UNREACHABLE,
                )
            except (asyncio.CancelledError, GeneratorExit):
                logger.info("%s stream abandoned by caller in state %s", self.display_name, state.value)
                span.set_attribute(ATTR_PROVIDER_OUTCOME, AdapterState.FAILED.value)
                raise

            if terminal is None:
                logger.warning("%s stream ended without a terminal marker", self.display_name)
                terminal = ErrorDelta(
                    error=f"{self.display_name} stream ended unexpectedly",
                    code=ERROR_INCOMPLETE_STREAM,
                )

            state = AdapterState.DONE if terminal.type == "done" else AdapterState.FAILED
            span.set_attribute(ATTR_PROVIDER_OUTCOME, state.value)
            if terminal.type == "error":
                span.set_attribute(ATTR_PROVIDER_STATUS, terminal.code or "")
            logger.debug("%s adapter finished in state %s", self.display_name, state.value)
            yield terminal

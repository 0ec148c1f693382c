"""SSE framing for token-delta streams.

Wraps the pipeline's delta generator into ``data: {...}\\n\\n`` frames
with a wall-clock timeout, an error boundary, and unified
metrics/tracing.  Whatever happens upstream, the client sees exactly
one terminal frame and nothing after it.
"""

import asyncio
import json
import logging
import time
from collections import Counter as EventCounter
from collections.abc import AsyncGenerator
from contextlib import aclosing
from datetime import timedelta

from chatrelay.core.errors import ProviderError
from chatrelay.core.metrics import (
    STREAM_EVENTS_TOTAL,
    TURN_DURATION_SECONDS,
    TURNS_ACTIVE,
    TURNS_TOTAL,
)
from chatrelay.core.models import (
    ERROR_INCOMPLETE_STREAM,
    ERROR_PROCESSING,
    ERROR_REQUEST_TIMEOUT,
    ErrorDelta,
    TokenDelta,
    is_terminal,
)
from chatrelay.infra.telemetry import (
    ATTR_SSE_ERROR_CODE,
    ATTR_SSE_EVENT_COUNTS,
    ATTR_TURN_PROVIDER,
    SPAN_SSE_STREAM,
    tracer,
)

logger = logging.getLogger(__name__)


def format_sse(delta: TokenDelta) -> str:
    """One event-stream frame for *delta*."""
    return f"data: {delta.model_dump_json(exclude_none=True)}\n\n"


async def sse_stream(
    deltas: AsyncGenerator[TokenDelta, None],
    *,
    request_timeout: timedelta,
    provider: str = "",
) -> AsyncGenerator[str, None]:
    """Format token deltas as SSE with timeout, error handling, and metrics.

    Parameters
    ----------
    deltas:
        Lazy delta sequence for one turn (normally
        ``ChatPipeline.stream_turn``).
    request_timeout:
        Wall-clock budget for the whole turn.
    provider:
        Provider tag used as the metrics label.

    Yields
    ------
    SSE-formatted strings; the last one is always ``done`` or ``error``.
    """
    with tracer.start_as_current_span(SPAN_SSE_STREAM) as span:
        span.set_attribute(ATTR_TURN_PROVIDER, provider)
        code = "ok"
        event_counts: EventCounter[str] = EventCounter()
        terminal: TokenDelta | None = None
        TURNS_ACTIVE.labels(provider=provider).inc()
        start = time.monotonic()

        def _count(delta: TokenDelta) -> None:
            event_counts[delta.type] += 1
            STREAM_EVENTS_TOTAL.labels(provider=provider, event_type=delta.type).inc()

        try:
            async with asyncio.timeout(request_timeout.total_seconds()):
                async with aclosing(deltas) as stream:
                    async for delta in stream:
                        if is_terminal(delta):
                            terminal = delta
                            break
                        _count(delta)
                        yield format_sse(delta)

            if terminal is None:
                logger.warning("Delta stream ended without a terminal event.")
                terminal = ErrorDelta(
                    error="The response ended unexpectedly.",
                    code=ERROR_INCOMPLETE_STREAM,
                )

        except TimeoutError:
            logger.warning("Request timed out after %s.", request_timeout)
            terminal = ErrorDelta(
                error="Request timed out.", code=ERROR_REQUEST_TIMEOUT
            )
        except ProviderError as e:
            logger.warning("Turn rejected: %s", e)
            terminal = ErrorDelta(error=str(e), code=e.code)
        except (asyncio.CancelledError, GeneratorExit):
            code = "CANCELLED"
            logger.info("Client disconnected; stream cancelled.")
            raise
        except Exception as e:
            span.record_exception(e)
            logger.warning("Unexpected error in SSE stream", exc_info=True)
            terminal = ErrorDelta(
                error=f"Failed to process the request: {e}", code=ERROR_PROCESSING
            )
        finally:
            if terminal is not None:
                _count(terminal)
                if terminal.type == "error":
                    code = terminal.code or "error"
            span.set_attribute(ATTR_SSE_ERROR_CODE, code)
            span.set_attribute(ATTR_SSE_EVENT_COUNTS, json.dumps(event_counts))
            TURNS_ACTIVE.labels(provider=provider).dec()
            TURNS_TOTAL.labels(
                provider=provider,
                outcome="done" if code == "ok" else code.lower(),
            ).inc()
            TURN_DURATION_SECONDS.labels(provider=provider).observe(
                time.monotonic() - start
            )

        yield format_sse(terminal)

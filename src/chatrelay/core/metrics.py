"""Prometheus metrics for the chat relay.

Custom business metrics that complement the auto-instrumented HTTP
metrics provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``chatrelay_`` prefix.
"""

import asyncio
import functools
import logging
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import aclosing
from typing import Any

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Turn metrics
# ---------------------------------------------------------------------------

TURNS_ACTIVE = Gauge(
    "chatrelay_turns_active",
    "Number of streamed turns currently in progress",
    ["provider"],
)

TURNS_TOTAL = Counter(
    "chatrelay_turns_total",
    "Total turns by terminal outcome",
    ["provider", "outcome"],  # done | error | cancelled
)

TURN_DURATION_SECONDS = Histogram(
    "chatrelay_turn_duration_seconds",
    "End-to-end duration of a streamed turn",
    ["provider"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

STREAM_EVENTS_TOTAL = Counter(
    "chatrelay_stream_events_total",
    "Total stream frames written, by delta type",
    ["provider", "event_type"],  # content | done | error
)

# ---------------------------------------------------------------------------
# Provider metrics
# ---------------------------------------------------------------------------

PROVIDER_REQUESTS_TOTAL = Counter(
    "chatrelay_provider_requests_total",
    "Backend requests by provider and outcome",
    ["provider", "outcome"],  # done | error code (lowercase)
)

PROVIDER_FIRST_TOKEN_SECONDS = Histogram(
    "chatrelay_provider_first_token_seconds",
    "Latency from request start to the first delta",
    ["provider"],
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

MALFORMED_FRAMES_TOTAL = Counter(
    "chatrelay_malformed_frames_total",
    "Backend stream lines skipped because they failed to parse",
    ["provider"],
)

# ---------------------------------------------------------------------------
# Augmentation metrics
# ---------------------------------------------------------------------------

ATTACHMENTS_TOTAL = Counter(
    "chatrelay_attachments_total",
    "Attachments processed, by kind and outcome",
    ["kind", "outcome"],  # kind: text | image | pdf | other
)

KNOWLEDGE_LOOKUPS_TOTAL = Counter(
    "chatrelay_knowledge_lookups_total",
    "Knowledge-base lookups by outcome",
    ["outcome"],  # hit | empty | error
)


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


def observe_provider_stream(
    provider: str,
) -> Callable[[Callable[..., AsyncGenerator]], Callable[..., AsyncGenerator]]:
    """Decorator for an adapter's delta generator.

    Records first-delta latency and the request outcome (``done`` or
    the lower-cased error code of the terminal delta).
    """

    def decorator(fn: Callable[..., AsyncGenerator]) -> Callable[..., AsyncGenerator]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> AsyncGenerator:
            start = time.monotonic()
            first = True
            outcome = "incomplete"
            try:
                async with aclosing(fn(*args, **kwargs)) as deltas:
                    async for delta in deltas:
                        if first:
                            PROVIDER_FIRST_TOKEN_SECONDS.labels(provider=provider).observe(
                                time.monotonic() - start
                            )
                            first = False
                        if delta.type == "done":
                            outcome = "done"
                        elif delta.type == "error":
                            outcome = (delta.code or "error").lower()
                        yield delta
            except (asyncio.CancelledError, GeneratorExit):
                if outcome == "incomplete":
                    outcome = "cancelled"
                raise
            finally:
                PROVIDER_REQUESTS_TOTAL.labels(provider=provider, outcome=outcome).inc()

        return wrapper

    return decorator


def instrument_app(app: FastAPI, excluded_handlers: list[str]) -> None:
    """Attach HTTP instrumentation middleware and the ``/metrics`` endpoint."""
    Instrumentator(excluded_handlers=excluded_handlers).instrument(app).expose(
        app, endpoint="/metrics"
    )
    logger.info("Prometheus metrics initialised")

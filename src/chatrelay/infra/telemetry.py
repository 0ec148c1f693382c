"""OpenTelemetry bootstrap: tracing initialisation and span names.

Configures a ``TracerProvider`` with an OTLP HTTP exporter when tracing
is enabled via ``TracingConfig``.  When disabled the module is a no-op
and ``tracer`` hands out non-recording spans.

Auto-instrumentations wired here:

- **FastAPI** (inbound HTTP spans)
- **httpx** (outbound spans for every provider call)

Usage::

    from chatrelay.infra.telemetry import SPAN_CHAT_TURN, tracer

    with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
        ...
"""

from __future__ import annotations

import base64
import logging

from opentelemetry import trace

from chatrelay.configs.system import TracingConfig

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("chatrelay")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_CHAT_TURN = "chat.turn"
SPAN_CHAT_AUGMENT = "chat.augment"
SPAN_PROVIDER_STREAM = "provider.stream"
SPAN_SSE_STREAM = "sse.stream"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_TURN_PROVIDER = "turn.provider"
ATTR_TURN_MODEL = "turn.model"
ATTR_TURN_ATTACHMENTS = "turn.attachments"
ATTR_TURN_HISTORY = "turn.history"
ATTR_AUGMENT_KNOWLEDGE = "augment.knowledge"
ATTR_AUGMENT_PROMPT_LEN = "augment.prompt_len"
ATTR_PROVIDER_STATUS = "provider.status_code"
ATTR_PROVIDER_OUTCOME = "provider.outcome"
ATTR_SSE_ERROR_CODE = "sse.error_code"
ATTR_SSE_EVENT_COUNTS = "sse.event_counts"


def init_telemetry(
    app: object | None = None,
    settings: TracingConfig | None = None,
) -> bool:
    """Initialise the OTEL ``TracerProvider`` and auto-instrumentations.

    Returns whether tracing was enabled.
    """
    if settings is None or not settings.enabled:
        logger.info("OpenTelemetry tracing disabled.")
        return False

    if not settings.endpoint:
        logger.warning(
            "Tracing enabled but no endpoint configured, "
            "skipping OpenTelemetry setup."
        )
        return False

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    resource = Resource.create({"service.name": settings.service_name})
    sampler = ParentBased(root=TraceIdRatioBased(settings.sample_rate))
    provider = TracerProvider(resource=resource, sampler=sampler)

    headers: dict[str, str] = {}
    if settings.username and settings.password:
        credentials = f"{settings.username}:{settings.password}"
        encoded = base64.b64encode(credentials.encode()).decode()
        headers["Authorization"] = f"Basic {encoded}"

    exporter = OTLPSpanExporter(endpoint=settings.endpoint, headers=headers)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        excluded = ",".join(settings.excluded_urls)
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded)

    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    HTTPXClientInstrumentor().instrument()

    logger.info(
        "OpenTelemetry tracing initialised (service=%s).", settings.service_name
    )
    return True

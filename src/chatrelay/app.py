"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from chatrelay.api.chat import router as chat_router
from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.core.deps import build_pipeline
from chatrelay.core.metrics import instrument_app
from chatrelay.infra.logging import setup_logging
from chatrelay.infra.telemetry import init_telemetry

logger = logging.getLogger(__name__)

# Connection pool shared by every provider adapter.
HTTP_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the shared HTTP client and the chat pipeline on ``app.state``."""
    config: AppConfig = app.state.config
    logger.info("Starting chatrelay on %s:%d", config.api.host, config.api.port)

    async with httpx.AsyncClient(limits=HTTP_LIMITS) as client:
        app.state.http_client = client
        app.state.pipeline = build_pipeline(client, config)
        yield

    logger.info("chatrelay shut down")


def get_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="chatrelay",
        description="Streaming chat relay for local and cloud LLM backends",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config

    app.include_router(chat_router)

    init_telemetry(app, config.tracing)
    instrument_app(app, excluded_handlers=config.tracing.excluded_urls)

    return app

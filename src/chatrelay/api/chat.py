"""Chat API endpoints."""

import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from chatrelay.core.models import (
    PROVIDER_GEMINI,
    PROVIDER_OLLAMA,
    PROVIDER_OPENAI,
    ChatTurn,
)
from chatrelay.core.providers import OllamaAdapter, resolve_provider

from .deps import AppConfigDep, ChatPipelineDep, ProviderRegistryDep
from .streaming import sse_stream

logger = logging.getLogger(__name__)

STREAMING_RESPONSE_MEDIA_TYPE = "text/event-stream"
STREAMING_RESPONSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

router = APIRouter(prefix="/api", tags=["chat"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    providers: dict[str, bool]


class ModelInfo(BaseModel):
    name: str
    provider: str
    description: str


class ModelsResponse(BaseModel):
    models: list[ModelInfo]


@router.post("/chat")
async def chat(
    turn: ChatTurn,
    pipeline: ChatPipelineDep,
    config: AppConfigDep,
) -> StreamingResponse:
    """
    Relay one chat turn and stream the reply as Server-Sent Events.

    Each event is a JSON object:
    - ``{"content": "..."}``: a text increment (zero or more)
    - ``{"done": true}``: successful end of the reply
    - ``{"error": "...", "code": "..."}``: failed end of the reply

    Exactly one ``done`` or ``error`` event ends every stream.
    """
    return StreamingResponse(
        sse_stream(
            pipeline.stream_turn(turn),
            request_timeout=config.api.request_timeout,
            provider=resolve_provider(turn.model_id),
        ),
        media_type=STREAMING_RESPONSE_MEDIA_TYPE,
        headers=STREAMING_RESPONSE_HEADERS,
    )


@router.get("/health")
async def health(config: AppConfigDep) -> HealthResponse:
    """Liveness plus which providers have credentials configured."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        providers={
            PROVIDER_OLLAMA: bool(config.ollama.host),
            PROVIDER_GEMINI: bool(config.gemini.api_key),
            PROVIDER_OPENAI: bool(config.openai.api_key),
        },
    )


@router.get("/models")
async def models(
    config: AppConfigDep, registry: ProviderRegistryDep
) -> ModelsResponse:
    """Models selectable by the client.

    Cloud models are listed only when their credential is set; local
    models are whatever the local server reports, if it is reachable.
    """
    found: list[ModelInfo] = []
    if config.gemini.api_key:
        found.extend(
            ModelInfo(name=name, provider=PROVIDER_GEMINI, description=f"Google {name}")
            for name in config.gemini.models
        )
    if config.openai.api_key:
        found.extend(
            ModelInfo(name=name, provider=PROVIDER_OPENAI, description=f"OpenAI {name}")
            for name in config.openai.models
        )

    local = registry.get(PROVIDER_OLLAMA)
    if isinstance(local, OllamaAdapter):
        try:
            names = await local.list_models()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("Local model server not available: %s", e)
        else:
            found.extend(
                ModelInfo(name=name, provider=PROVIDER_OLLAMA, description=f"Local {name}")
                for name in names
            )
    return ModelsResponse(models=found)

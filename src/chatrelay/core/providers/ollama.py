"""Local model server adapter (Ollama ``/api/generate``, NDJSON stream)."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence

import httpx

from chatrelay.configs.system import OllamaConfig
from chatrelay.core.models import (
    ERROR_NOT_FOUND,
    ERROR_UPSTREAM,
    PROVIDER_OLLAMA,
    ROLE_USER,
    ContentDelta,
    DoneDelta,
    ErrorDelta,
    HistoryMessage,
    TokenDelta,
    TurnPrompt,
)

from .base import ProviderAdapter, ProviderRequest, describe_status, error_detail

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"

LOCAL_HISTORY_LIMIT = 6


def render_transcript(
    message: str, history: Sequence[HistoryMessage], preamble: str = ""
) -> str:
    """Flatten preamble, history and the live turn into one prompt."""
    prompt = f"{preamble}\n\n" if preamble else ""
    for entry in history:
        speaker = "User" if entry.role == ROLE_USER else "Assistant"
        prompt += f"{speaker}: {entry.text}\n"
    prompt += f"User: {message}\nAssistant: "
    return prompt


class OllamaAdapter(ProviderAdapter):
    name = PROVIDER_OLLAMA
    display_name = "Local model server"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: OllamaConfig,
        *,
        history_limit: int = LOCAL_HISTORY_LIMIT,
    ) -> None:
        super().__init__(client, history_limit=history_limit)
        self.config = config

    @property
    def base_url(self) -> str:
        return self.config.host.rstrip("/")

    def check_configured(self) -> None:
        self._require(self.config.host, "OLLAMA_HOST")

    def build_request(self, prompt: TurnPrompt) -> ProviderRequest:
        cfg = self.config
        return ProviderRequest(
            model=prompt.model_id,
            url=f"{self.base_url}{GENERATE_PATH}",
            payload={
                "model": prompt.model_id,
                "prompt": render_transcript(
                    prompt.message, self.window(prompt.history), prompt.preamble
                ),
                "stream": True,
                "options": {
                    "temperature": cfg.temperature,
                    "top_p": cfg.top_p,
                    "max_tokens": cfg.max_tokens,
                },
            },
            timeout=cfg.timeout.total_seconds(),
            persona=prompt.persona,
        )

    def status_error(self, status: int, body: str) -> ErrorDelta:
        if status == 404:
            return ErrorDelta(
                error=f"Model not available on the local model server: {error_detail(body) or 'not found'}",
                code=ERROR_NOT_FOUND,
            )
        return describe_status(self.display_name, status, error_detail(body))

    async def _stream(self, request: ProviderRequest) -> AsyncIterator[TokenDelta]:
        async with self._client.stream(
            "POST",
            request.url,
            json=request.payload,
            headers=request.headers,
            timeout=request.timeout,
        ) as response:
            if response.is_error:
                yield await self.read_error(response)
                return

            async for line in response.aiter_lines():
                line = line.strip()
                if not line:
                    continue
                try:
                    chunk = json.loads(line)
                except json.JSONDecodeError:
                    self.malformed(line)
                    continue
                if not isinstance(chunk, dict):
                    self.malformed(line)
                    continue

                if chunk.get("error"):
                    yield ErrorDelta(
                        error=f"{self.display_name} error: {chunk['error']}",
                        code=ERROR_UPSTREAM,
                    )
                    return
                if chunk.get("response"):
                    yield ContentDelta(content=chunk["response"])
                if chunk.get("done"):
                    yield DoneDelta()
                    return

    async def list_models(self) -> list[str]:
        """Names of the models installed on the local server."""
        response = await self._client.get(
            f"{self.base_url}{TAGS_PATH}", timeout=self.config.timeout.total_seconds()
        )
        response.raise_for_status()
        return [m["name"] for m in response.json().get("models", []) if "name" in m]

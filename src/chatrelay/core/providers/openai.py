"""OpenAI chat-completions adapter (SSE stream)."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from chatrelay.configs.system import OpenAIConfig
from chatrelay.core.models import (
    ERROR_UPSTREAM,
    PROVIDER_OPENAI,
    ROLE_SYSTEM,
    ROLE_USER,
    ContentDelta,
    DoneDelta,
    ErrorDelta,
    HistoryMessage,
    TokenDelta,
    TurnPrompt,
)

from .base import ProviderAdapter, ProviderRequest, error_detail

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"
SSE_DATA_PREFIX = "data:"
SSE_DONE_MARKER = "[DONE]"

CLOUD_HISTORY_LIMIT = 10


def build_messages(
    message: str, history: Sequence[HistoryMessage], preamble: str = ""
) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if preamble:
        messages.append({"role": ROLE_SYSTEM, "content": preamble})
    messages.extend({"role": entry.role, "content": entry.text} for entry in history)
    messages.append({"role": ROLE_USER, "content": message})
    return messages


def _delta_content(chunk: dict[str, Any]) -> str:
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return ""
    return delta.get("content") or ""


class OpenAIAdapter(ProviderAdapter):
    name = PROVIDER_OPENAI
    display_name = "OpenAI"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: OpenAIConfig,
        *,
        history_limit: int = CLOUD_HISTORY_LIMIT,
    ) -> None:
        super().__init__(client, history_limit=history_limit)
        self.config = config

    def check_configured(self) -> None:
        self._require(self.config.api_key, "OPENAI_API_KEY")

    def build_request(self, prompt: TurnPrompt) -> ProviderRequest:
        cfg = self.config
        return ProviderRequest(
            model=prompt.model_id,
            url=f"{cfg.base_url.rstrip('/')}{COMPLETIONS_PATH}",
            payload={
                "model": prompt.model_id,
                "messages": build_messages(
                    prompt.message, self.window(prompt.history), prompt.preamble
                ),
                "stream": True,
                "temperature": cfg.temperature,
                "max_tokens": cfg.max_tokens,
            },
            headers={"Authorization": f"Bearer {cfg.api_key}"},
            timeout=cfg.timeout.total_seconds(),
            persona=prompt.persona,
        )

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
                if not line.startswith(SSE_DATA_PREFIX):
                    # Blank separators, comments and other SSE fields.
                    continue
                data = line[len(SSE_DATA_PREFIX) :].strip()
                if data == SSE_DONE_MARKER:
                    yield DoneDelta()
                    return
                try:
                    chunk = json.loads(data)
                except json.JSONDecodeError:
                    self.malformed(data)
                    continue
                if not isinstance(chunk, dict):
                    self.malformed(data)
                    continue

                if chunk.get("error"):
                    detail = error_detail(json.dumps(chunk))
                    yield ErrorDelta(
                        error=f"{self.display_name} error: {detail}",
                        code=ERROR_UPSTREAM,
                    )
                    return
                content = _delta_content(chunk)
                if content:
                    yield ContentDelta(content=content)

"""Gemini ``generateContent`` adapter.

Gemini is called once, non-incrementally: the full reply arrives in a
single JSON body and is emitted as one content delta followed by
``done``.  The persona response hook is applied here, on the full text.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from chatrelay.configs.system import GeminiConfig
from chatrelay.core.models import (
    ERROR_EMPTY_RESPONSE,
    ERROR_UPSTREAM,
    PROVIDER_GEMINI,
    ContentDelta,
    DoneDelta,
    ErrorDelta,
    TokenDelta,
    TurnPrompt,
)
from chatrelay.core.persona import Persona

from .base import ProviderAdapter, ProviderRequest
from .ollama import render_transcript
from .openai import CLOUD_HISTORY_LIMIT

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"


def extract_text(body: dict[str, Any]) -> str | None:
    """``candidates[0].content.parts[0].text``, or ``None`` when absent."""
    try:
        return body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


def block_reason(body: dict[str, Any]) -> str:
    feedback = body.get("promptFeedback") or {}
    reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
    if reason:
        return f"prompt blocked ({reason})"
    candidates = body.get("candidates") or []
    if candidates and isinstance(candidates[0], dict):
        finish = candidates[0].get("finishReason")
        if finish:
            return f"finish reason {finish}"
    return "no candidates returned"


class GeminiAdapter(ProviderAdapter):
    name = PROVIDER_GEMINI
    display_name = "Gemini"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: GeminiConfig,
        persona: Persona,
        *,
        history_limit: int = CLOUD_HISTORY_LIMIT,
    ) -> None:
        super().__init__(client, history_limit=history_limit)
        self.config = config
        self.persona = persona

    def check_configured(self) -> None:
        self._require(self.config.api_key, "GEMINI_API_KEY")

    def api_model(self, model_id: str) -> str:
        """Concrete API model for a requested id, with a fixed fallback."""
        return self.config.model_aliases.get(model_id, self.config.default_model)

    def build_request(self, prompt: TurnPrompt) -> ProviderRequest:
        cfg = self.config
        model = self.api_model(prompt.model_id)
        parts: list[dict[str, Any]] = [
            {"inlineData": {"mimeType": image.mime_type, "data": image.data}}
            for image in prompt.images
        ]
        parts.append(
            {
                "text": render_transcript(
                    prompt.message, self.window(prompt.history), prompt.preamble
                )
            }
        )
        logger.debug("Gemini model %s -> %s (%d image parts)", prompt.model_id, model, len(prompt.images))
        return ProviderRequest(
            model=model,
            url=f"{cfg.base_url.rstrip('/')}/models/{model}:generateContent",
            payload={
                "contents": [{"parts": parts}],
                "generationConfig": {
                    "temperature": cfg.temperature,
                    "maxOutputTokens": cfg.max_output_tokens,
                    "topK": cfg.top_k,
                    "topP": cfg.top_p,
                },
            },
            headers={API_KEY_HEADER: cfg.api_key},
            timeout=cfg.timeout.total_seconds(),
            persona=prompt.persona,
        )

    async def _stream(self, request: ProviderRequest) -> AsyncIterator[TokenDelta]:
        response = await self._client.post(
            request.url,
            json=request.payload,
            headers=request.headers,
            timeout=request.timeout,
        )
        if response.is_error:
            yield await self.read_error(response)
            return

        try:
            body = response.json()
        except ValueError:
            self.malformed(response.text)
            yield ErrorDelta(
                error=f"{self.display_name} returned an unreadable response",
                code=ERROR_UPSTREAM,
            )
            return

        text = extract_text(body) if isinstance(body, dict) else None
        if text is None:
            reason = block_reason(body) if isinstance(body, dict) else "unexpected body"
            logger.warning("Gemini returned no text: %s", reason)
            yield ErrorDelta(
                error=f"{self.display_name} returned no answer: {reason}",
                code=ERROR_EMPTY_RESPONSE,
            )
            return

        yield ContentDelta(content=self.persona.apply_response(text, request.persona))
        yield DoneDelta()

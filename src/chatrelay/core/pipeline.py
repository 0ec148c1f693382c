"""Per-turn orchestration: route, augment, draw persona, stream."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass

from chatrelay.infra.telemetry import (
    ATTR_TURN_ATTACHMENTS,
    ATTR_TURN_HISTORY,
    ATTR_TURN_MODEL,
    ATTR_TURN_PROVIDER,
    SPAN_CHAT_TURN,
    tracer,
)

from .attachments import PDF_TEXT_LIMIT, extract_attachments
from .augment import ContextAugmenter
from .models import ChatTurn, PersonaDecision, TokenDelta, TurnPrompt
from .persona import Persona, apply_response_stream
from .providers import ProviderAdapter, ProviderRegistry, ProviderRequest, resolve_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedTurn:
    adapter: ProviderAdapter
    prompt: TurnPrompt
    request: ProviderRequest

    @property
    def decision(self) -> PersonaDecision:
        return self.prompt.persona


class ChatPipeline:
    """Turns one :class:`ChatTurn` into a lazy stream of token deltas.

    Configuration and routing failures raise :class:`ProviderError`
    before anything is sent; backend failures arrive as the terminal
    error delta of the stream.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        augmenter: ContextAugmenter,
        persona: Persona,
        *,
        pdf_text_limit: int = PDF_TEXT_LIMIT,
    ) -> None:
        self.registry = registry
        self.augmenter = augmenter
        self.persona = persona
        self.pdf_text_limit = pdf_text_limit

    async def prepare(self, turn: ChatTurn) -> PreparedTurn:
        """Everything up to, but not including, the backend call."""
        provider = resolve_provider(turn.model_id)
        with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
            span.set_attribute(ATTR_TURN_PROVIDER, provider)
            span.set_attribute(ATTR_TURN_MODEL, turn.model_id)
            span.set_attribute(ATTR_TURN_ATTACHMENTS, len(turn.attachments))
            span.set_attribute(ATTR_TURN_HISTORY, len(turn.history))

            adapter = self.registry.get(provider)
            adapter.check_configured()

            extracted = await extract_attachments(
                turn.attachments, pdf_text_limit=self.pdf_text_limit
            )
            message = await self.augmenter.augment(turn, extracted.fragments)

            decision = self.persona.decide(turn.use_persona)
            prompt = TurnPrompt(
                model_id=turn.model_id,
                message=message,
                history=tuple(turn.history),
                images=tuple(extracted.images),
                persona=decision,
                preamble=self.persona.preamble(decision),
            )
            request = adapter.build_request(prompt)

        logger.info(
            "Prepared %s turn: model=%s history=%d attachments=%d persona=%s",
            provider,
            turn.model_id,
            len(turn.history),
            len(turn.attachments),
            decision.enabled,
        )
        return PreparedTurn(adapter=adapter, prompt=prompt, request=request)

    async def stream_turn(self, turn: ChatTurn) -> AsyncIterator[TokenDelta]:
        prepared = await self.prepare(turn)
        deltas = apply_response_stream(
            prepared.adapter.stream(prepared.request), self.persona, prepared.decision
        )
        async with aclosing(deltas):
            async for delta in deltas:
                yield delta

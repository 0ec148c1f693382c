"""Model id to provider routing, and the adapter registry."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from chatrelay.core.errors import UnknownProvider
from chatrelay.core.models import PROVIDER_GEMINI, PROVIDER_OLLAMA, PROVIDER_OPENAI

from .base import ProviderAdapter

logger = logging.getLogger(__name__)


def resolve_provider(model_id: str) -> str:
    """Pick a provider tag for *model_id*.

    Ids containing ``gemini`` go to Gemini, ids starting with ``gpt`` go
    to OpenAI, everything else is tried against the local model server.
    Matching is case-sensitive.
    """
    if "gemini" in model_id:
        return PROVIDER_GEMINI
    if model_id.startswith("gpt"):
        return PROVIDER_OPENAI
    return PROVIDER_OLLAMA


class ProviderRegistry:
    """Adapters keyed by provider tag."""

    def __init__(self, adapters: Iterable[ProviderAdapter] = ()) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.name] = adapter
        logger.debug("Registered provider adapter %s", adapter.name)

    def get(self, tag: str) -> ProviderAdapter:
        try:
            return self._adapters[tag]
        except KeyError:
            raise UnknownProvider(f"No adapter registered for provider '{tag}'") from None

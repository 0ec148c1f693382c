"""Component factories and FastAPI dependency getters.

``build_*`` functions are called once from the application lifespan;
the resulting objects live on ``app.state``.  ``get_*`` functions are
per-request ``Depends`` factories that read them back.
"""

from functools import partial

import httpx
from fastapi import Request

from chatrelay.configs.config import AppConfig

from .augment import ContextAugmenter
from .knowledge import DirectoryKnowledgeBase, KnowledgeHandle
from .persona import Persona
from .pipeline import ChatPipeline
from .providers import GeminiAdapter, OllamaAdapter, OpenAIAdapter, ProviderRegistry

# ---------------------------------------------------------------------------
# Lifespan factories
# ---------------------------------------------------------------------------


def build_knowledge(config: AppConfig) -> KnowledgeHandle:
    """Knowledge handle over the configured directory; loads on first use."""
    kc = config.knowledge
    return KnowledgeHandle(
        partial(
            DirectoryKnowledgeBase.load,
            kc.directory,
            max_results=kc.max_results,
            excerpt_chars=kc.excerpt_chars,
        )
    )


def build_registry(
    client: httpx.AsyncClient, config: AppConfig, persona: Persona
) -> ProviderRegistry:
    chat = config.chat
    return ProviderRegistry(
        [
            OllamaAdapter(
                client, config.ollama, history_limit=chat.local_history_limit
            ),
            OpenAIAdapter(
                client, config.openai, history_limit=chat.cloud_history_limit
            ),
            GeminiAdapter(
                client,
                config.gemini,
                persona,
                history_limit=chat.cloud_history_limit,
            ),
        ]
    )


def build_pipeline(
    client: httpx.AsyncClient,
    config: AppConfig,
    knowledge: KnowledgeHandle | None = None,
) -> ChatPipeline:
    """Wire persona, adapters and augmenter into one pipeline."""
    persona = Persona(config.persona)
    if knowledge is None:
        knowledge = build_knowledge(config)
    return ChatPipeline(
        build_registry(client, config, persona),
        ContextAugmenter(knowledge),
        persona,
        pdf_text_limit=config.chat.pdf_text_limit,
    )


# ---------------------------------------------------------------------------
# Per-request dependencies, read from app.state
# ---------------------------------------------------------------------------


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_pipeline(request: Request) -> ChatPipeline:
    """Return the ``ChatPipeline`` stored on ``app.state`` by the lifespan."""
    return request.app.state.pipeline


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.pipeline.registry

"""Backend adapters and routing."""

from .base import AdapterState, ProviderAdapter, ProviderRequest, describe_status
from .gemini import GeminiAdapter
from .ollama import OllamaAdapter
from .openai import OpenAIAdapter
from .router import ProviderRegistry, resolve_provider

__all__ = [
    "AdapterState",
    "GeminiAdapter",
    "OllamaAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "ProviderRegistry",
    "ProviderRequest",
    "describe_status",
    "resolve_provider",
]

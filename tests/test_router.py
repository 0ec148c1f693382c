"""Tests for provider routing."""

import httpx
import pytest

from chatrelay.configs.system import OllamaConfig
from chatrelay.core.errors import UnknownProvider
from chatrelay.core.providers import OllamaAdapter, ProviderRegistry, resolve_provider


@pytest.mark.parametrize(
    "model_id,provider",
    [
        ("gemini-1.5-pro", "gemini"),
        ("gemini-2.0-flash", "gemini"),
        ("models/gemini-pro", "gemini"),
        ("gpt-4", "openai"),
        ("gpt-4o-mini", "openai"),
        ("GPT-4", "ollama"),
        ("Gemini-Pro", "ollama"),
        ("llama2", "ollama"),
        ("chatgpt-4o-latest", "ollama"),
        ("totally-unknown", "ollama"),
        ("", "ollama"),
    ],
)
def test_resolve_provider(model_id, provider):
    assert resolve_provider(model_id) == provider


class TestProviderRegistry:
    def test_lookup_by_tag(self):
        adapter = OllamaAdapter(httpx.AsyncClient(), OllamaConfig(host="http://x"))
        registry = ProviderRegistry([adapter])

        assert registry.get("ollama") is adapter
        assert registry.get(resolve_provider("mistral")) is adapter

    def test_later_registration_replaces_earlier(self):
        first = OllamaAdapter(httpx.AsyncClient(), OllamaConfig(host="http://a"))
        second = OllamaAdapter(httpx.AsyncClient(), OllamaConfig(host="http://b"))
        registry = ProviderRegistry([first])
        registry.register(second)

        assert registry.get("ollama") is second

    def test_unregistered_tag_raises(self):
        registry = ProviderRegistry()
        with pytest.raises(UnknownProvider, match="gemini"):
            registry.get(resolve_provider("gemini-1.5-pro"))

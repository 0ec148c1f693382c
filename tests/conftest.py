"""Shared fixtures: fake backends and small stream helpers."""

import json
from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from chatrelay.configs.config import AppConfig
from chatrelay.configs.persona import PersonaConfig
from chatrelay.configs.system import GeminiConfig, OllamaConfig, OpenAIConfig
from chatrelay.core.knowledge import KnowledgeBase, KnowledgeHandle, KnowledgeResult


async def collect(stream: AsyncIterator) -> list:
    return [item async for item in stream]


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self._respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class CountingKnowledgeBase(KnowledgeBase):
    """Knowledge base that counts searches and returns canned results."""

    def __init__(self, results: list[KnowledgeResult] | None = None, fail: bool = False):
        self.results = results or []
        self.fail = fail
        self.search_calls = 0

    async def search(self, query: str) -> list[KnowledgeResult]:
        self.search_calls += 1
        if self.fail:
            raise ConnectionError("index offline")
        return list(self.results)


def knowledge_handle(kb: KnowledgeBase) -> KnowledgeHandle:
    async def factory() -> KnowledgeBase:
        return kb

    return KnowledgeHandle(factory)


def ndjson(*chunks: dict | str) -> bytes:
    lines = [c if isinstance(c, str) else json.dumps(c) for c in chunks]
    return ("\n".join(lines) + "\n").encode()


def sse(*payloads: dict | str) -> bytes:
    frames = [
        f"data: {p if isinstance(p, str) else json.dumps(p)}\n\n" for p in payloads
    ]
    return "".join(frames).encode()


def gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def make_client() -> Callable[[Recorder], httpx.AsyncClient]:
    def factory(recorder: Recorder) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(recorder))

    return factory


@pytest.fixture
def app_config() -> AppConfig:
    """Config with every provider configured and a deterministic persona."""
    return AppConfig(
        ollama=OllamaConfig(host="http://ollama.test:11434"),
        openai=OpenAIConfig(api_key="sk-test", base_url="https://openai.test/v1"),
        gemini=GeminiConfig(api_key="g-test", base_url="https://gemini.test/v1beta"),
        persona=PersonaConfig(suffix_probability=0.0),
    )

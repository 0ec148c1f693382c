"""Knowledge-base retrieval contract and the directory-backed reference store.

The augmenter only ever talks to a :class:`KnowledgeHandle`; the handle
builds the underlying :class:`KnowledgeBase` on first use behind an
``asyncio.Lock`` so concurrent turns share one instance.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

KNOWLEDGE_SUFFIXES = (".md", ".txt")

_TERM_RE = re.compile(r"\w+", re.UNICODE)


@dataclass(frozen=True)
class KnowledgeResult:
    title: str
    excerpt: str


class KnowledgeBase(ABC):
    """Read-only retrieval collaborator; must tolerate concurrent reads."""

    @abstractmethod
    async def search(self, query: str) -> list[KnowledgeResult]:
        """Return results ordered by relevance, most relevant first."""

    def generate_context(self, results: list[KnowledgeResult]) -> str | None:
        """Render *results* as a prompt section body, or ``None`` when empty."""
        if not results:
            return None
        blocks = [f"[{r.title}]\n{r.excerpt}" for r in results if r.excerpt.strip()]
        return "\n\n".join(blocks) or None


KnowledgeFactory = Callable[[], Awaitable[KnowledgeBase]]


class KnowledgeHandle:
    """Lazily builds a knowledge base exactly once.

    The factory runs under a lock on the first :meth:`get`; every later
    caller receives the same instance.  A failed build is not cached,
    so the next turn retries it.
    """

    def __init__(self, factory: KnowledgeFactory) -> None:
        self._factory = factory
        self._instance: KnowledgeBase | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> KnowledgeBase:
        if self._instance is not None:
            return self._instance
        async with self._lock:
            if self._instance is None:
                self._instance = await self._factory()
                logger.info(
                    "Knowledge base initialised: %s", type(self._instance).__name__
                )
        return self._instance

    async def search(self, query: str) -> list[KnowledgeResult]:
        kb = await self.get()
        return await kb.search(query)

    async def generate_context(self, results: list[KnowledgeResult]) -> str | None:
        kb = await self.get()
        return kb.generate_context(results)


def _terms(text: str) -> set[str]:
    return {t.lower() for t in _TERM_RE.findall(text) if len(t) > 1}


class DirectoryKnowledgeBase(KnowledgeBase):
    """Scores plain-text documents from a directory by query-term hits."""

    def __init__(
        self,
        documents: dict[str, str],
        *,
        max_results: int = 3,
        excerpt_chars: int = 1200,
    ) -> None:
        self._documents = documents
        self._max_results = max_results
        self._excerpt_chars = excerpt_chars

    @classmethod
    async def load(
        cls,
        directory: str | Path,
        *,
        max_results: int = 3,
        excerpt_chars: int = 1200,
    ) -> DirectoryKnowledgeBase:
        documents = await asyncio.to_thread(cls._read_directory, Path(directory))
        logger.info("Loaded %d knowledge documents from %s", len(documents), directory)
        return cls(documents, max_results=max_results, excerpt_chars=excerpt_chars)

    @staticmethod
    def _read_directory(directory: Path) -> dict[str, str]:
        if not directory.is_dir():
            logger.warning("Knowledge directory %s does not exist", directory)
            return {}
        documents: dict[str, str] = {}
        for path in sorted(directory.rglob("*")):
            if path.is_file() and path.suffix.lower() in KNOWLEDGE_SUFFIXES:
                documents[path.stem] = path.read_text(encoding="utf-8", errors="replace")
        return documents

    def __len__(self) -> int:
        return len(self._documents)

    def _excerpt(self, body: str, terms: set[str]) -> str:
        lowered = body.lower()
        positions = [lowered.find(t) for t in terms if t in lowered]
        start = max(min(positions) - self._excerpt_chars // 4, 0) if positions else 0
        excerpt = body[start : start + self._excerpt_chars].strip()
        if start > 0:
            excerpt = "..." + excerpt
        if start + self._excerpt_chars < len(body):
            excerpt += "..."
        return excerpt

    async def search(self, query: str) -> list[KnowledgeResult]:
        terms = _terms(query)
        if not terms:
            return []
        scored: list[tuple[int, str]] = []
        for title, body in self._documents.items():
            haystack = f"{title}\n{body}".lower()
            score = sum(haystack.count(term) for term in terms)
            if score:
                scored.append((score, title))
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            KnowledgeResult(title=title, excerpt=self._excerpt(self._documents[title], terms))
            for _, title in scored[: self._max_results]
        ]

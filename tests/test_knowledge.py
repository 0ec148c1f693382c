"""Tests for the knowledge handle and the directory knowledge base."""

import asyncio

import pytest

from chatrelay.core.knowledge import (
    DirectoryKnowledgeBase,
    KnowledgeBase,
    KnowledgeHandle,
    KnowledgeResult,
)
from conftest import CountingKnowledgeBase

# ---------------------------------------------------------------------------
# KnowledgeHandle
# ---------------------------------------------------------------------------


class TestKnowledgeHandle:
    @pytest.mark.asyncio
    async def test_builds_once_under_concurrent_use(self):
        builds = 0
        kb = CountingKnowledgeBase()

        async def factory() -> KnowledgeBase:
            nonlocal builds
            builds += 1
            await asyncio.sleep(0.01)
            return kb

        handle = KnowledgeHandle(factory)
        instances = await asyncio.gather(*(handle.get() for _ in range(10)))
        assert builds == 1
        assert all(i is kb for i in instances)

    @pytest.mark.asyncio
    async def test_failed_build_is_retried(self):
        attempts = 0

        async def factory() -> KnowledgeBase:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise OSError("disk not mounted")
            return CountingKnowledgeBase()

        handle = KnowledgeHandle(factory)
        with pytest.raises(OSError):
            await handle.get()
        assert await handle.get() is not None
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_generate_context_joins_results(self):
        handle = KnowledgeHandle(lambda: asyncio.sleep(0, CountingKnowledgeBase()))
        context = await handle.generate_context(
            [KnowledgeResult("Leave", "20 days"), KnowledgeResult("Hours", "9 to 5")]
        )
        assert context == "[Leave]\n20 days\n\n[Hours]\n9 to 5"

    @pytest.mark.asyncio
    async def test_generate_context_empty_is_none(self):
        handle = KnowledgeHandle(lambda: asyncio.sleep(0, CountingKnowledgeBase()))
        assert await handle.generate_context([]) is None


# ---------------------------------------------------------------------------
# DirectoryKnowledgeBase
# ---------------------------------------------------------------------------


class TestDirectoryKnowledgeBase:
    @pytest.mark.asyncio
    async def test_ranks_by_term_hits(self, tmp_path):
        (tmp_path / "vacation.md").write_text(
            "Vacation policy. Vacation requests go to your manager.", encoding="utf-8"
        )
        (tmp_path / "expenses.txt").write_text(
            "Expenses are reimbursed monthly. Vacation travel is not covered.",
            encoding="utf-8",
        )
        (tmp_path / "ignored.pdf").write_bytes(b"%PDF-1.4 vacation")

        kb = await DirectoryKnowledgeBase.load(tmp_path)
        assert len(kb) == 2

        results = await kb.search("vacation policy")
        assert [r.title for r in results] == ["vacation", "expenses"]
        assert "Vacation policy" in results[0].excerpt

    @pytest.mark.asyncio
    async def test_respects_max_results_and_excerpt_length(self, tmp_path):
        for i in range(5):
            (tmp_path / f"doc{i}.txt").write_text("badge " * 100, encoding="utf-8")

        kb = await DirectoryKnowledgeBase.load(tmp_path, max_results=2, excerpt_chars=50)
        results = await kb.search("badge")
        assert len(results) == 2
        assert all(len(r.excerpt) <= 50 + len("...") * 2 for r in results)

    @pytest.mark.asyncio
    async def test_no_match_returns_nothing(self, tmp_path):
        (tmp_path / "a.md").write_text("alpha beta", encoding="utf-8")
        kb = await DirectoryKnowledgeBase.load(tmp_path)
        assert await kb.search("gamma") == []
        assert kb.generate_context(await kb.search("gamma")) is None

    @pytest.mark.asyncio
    async def test_missing_directory_is_empty(self, tmp_path):
        kb = await DirectoryKnowledgeBase.load(tmp_path / "nope")
        assert len(kb) == 0
        assert await kb.search("anything") == []

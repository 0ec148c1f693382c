"""Tests for the context augmenter."""

import pytest

from chatrelay.core.augment import (
    ATTACHMENTS_HEADER,
    KNOWLEDGE_HEADER,
    ContextAugmenter,
    profile_line,
)
from chatrelay.core.knowledge import KnowledgeResult
from chatrelay.core.models import ChatTurn, UserProfile
from conftest import CountingKnowledgeBase, knowledge_handle


def _turn(**kwargs) -> ChatTurn:
    return ChatTurn(text=kwargs.pop("text", "What is the leave policy?"), model_id="llama2", **kwargs)


class TestKnowledgeLookup:
    @pytest.mark.asyncio
    async def test_disabled_flag_never_calls_collaborator(self):
        kb = CountingKnowledgeBase([KnowledgeResult("Leave", "20 days")])
        augmenter = ContextAugmenter(knowledge_handle(kb))

        for _ in range(3):
            await augmenter.augment(_turn(use_knowledge_base=False), [])

        assert kb.search_calls == 0

    @pytest.mark.asyncio
    async def test_hit_adds_section(self):
        kb = CountingKnowledgeBase([KnowledgeResult("Leave", "20 days")])
        augmenter = ContextAugmenter(knowledge_handle(kb))

        message = await augmenter.augment(_turn(use_knowledge_base=True), [])

        assert kb.search_calls == 1
        assert message.startswith(f"{KNOWLEDGE_HEADER}\n[Leave]\n20 days")
        assert message.endswith("What is the leave policy?")

    @pytest.mark.asyncio
    async def test_no_results_adds_no_section(self):
        kb = CountingKnowledgeBase([])
        augmenter = ContextAugmenter(knowledge_handle(kb))

        message = await augmenter.augment(_turn(use_knowledge_base=True), [])

        assert kb.search_calls == 1
        assert KNOWLEDGE_HEADER not in message
        assert message == "What is the leave policy?"

    @pytest.mark.asyncio
    async def test_collaborator_failure_degrades_silently(self):
        kb = CountingKnowledgeBase(fail=True)
        augmenter = ContextAugmenter(knowledge_handle(kb))

        message = await augmenter.augment(_turn(use_knowledge_base=True), [])

        assert message == "What is the leave policy?"

    @pytest.mark.asyncio
    async def test_missing_handle_degrades_silently(self):
        augmenter = ContextAugmenter(None)
        message = await augmenter.augment(_turn(use_knowledge_base=True), [])
        assert message == "What is the leave policy?"


class TestSectionOrder:
    @pytest.mark.asyncio
    async def test_knowledge_then_attachments_then_profile_then_text(self):
        kb = CountingKnowledgeBase([KnowledgeResult("Leave", "20 days")])
        augmenter = ContextAugmenter(knowledge_handle(kb))
        turn = _turn(
            use_knowledge_base=True,
            user_profile=UserProfile(name="Sato", department="Sales", context="new hire"),
        )

        message = await augmenter.augment(turn, ["[Image file: a.png]", "[File: b (type: unknown)]"])

        positions = [
            message.index(KNOWLEDGE_HEADER),
            message.index(ATTACHMENTS_HEADER),
            message.index("[Image file: a.png]"),
            message.index("[File: b (type: unknown)]"),
            message.index("User profile: Sato, Sales, new hire"),
            message.index("What is the leave policy?"),
        ]
        assert positions == sorted(positions)
        assert message.endswith("User profile: Sato, Sales, new hire\n\nWhat is the leave policy?")

    @pytest.mark.asyncio
    async def test_no_sections_is_bare_text(self):
        augmenter = ContextAugmenter(None)
        assert await augmenter.augment(_turn(text="hi"), []) == "hi"


class TestProfileLine:
    def test_blank_context_is_omitted(self):
        assert profile_line(UserProfile(name="Sato", department="Sales", context="   ")) is None
        assert profile_line(None) is None

    def test_missing_fields_render_unknown(self):
        assert profile_line(UserProfile(context=" remote ")) == "User profile: unknown, unknown, remote"

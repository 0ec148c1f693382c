"""Unit tests for the turn and delta models."""

import pytest
from pydantic import ValidationError

from chatrelay.api.streaming import format_sse
from chatrelay.core.models import (
    ChatTurn,
    ContentDelta,
    DoneDelta,
    ErrorDelta,
    is_terminal,
)

# ---------------------------------------------------------------------------
# ChatTurn
# ---------------------------------------------------------------------------


class TestChatTurn:
    def test_defaults(self):
        turn = ChatTurn(text="hi", model_id="llama2")
        assert turn.history == []
        assert turn.attachments == []
        assert turn.use_knowledge_base is False
        assert turn.use_persona is True
        assert turn.user_profile is None

    def test_accepts_camel_case_keys(self):
        turn = ChatTurn.model_validate(
            {
                "text": "hi",
                "modelId": "gpt-4",
                "useKnowledgeBase": True,
                "usePersona": False,
                "attachments": [
                    {"filename": "a.txt", "declaredMimeType": "text/plain", "payload": "x"}
                ],
                "userProfile": {"name": "Sato", "freeformContext": "likes tea"},
            }
        )
        assert turn.model_id == "gpt-4"
        assert turn.use_knowledge_base is True
        assert turn.use_persona is False
        assert turn.attachments[0].mime_type == "text/plain"
        assert turn.user_profile.context == "likes tea"

    def test_accepts_web_client_keys(self):
        turn = ChatTurn.model_validate(
            {
                "message": "hi",
                "model": "gemini-1.5-pro",
                "history": [{"role": "user", "content": "earlier"}],
                "files": [{"name": "img.png", "type": "image/png", "data": "AAAA"}],
                "useKnowledge": True,
                "usePersonality": False,
            }
        )
        assert turn.text == "hi"
        assert turn.history[0].text == "earlier"
        assert turn.attachments[0].filename == "img.png"
        assert turn.attachments[0].payload == "AAAA"
        assert turn.use_knowledge_base is True
        assert turn.use_persona is False

    def test_rejects_unknown_role(self):
        with pytest.raises(ValidationError):
            ChatTurn.model_validate(
                {"text": "hi", "model_id": "x", "history": [{"role": "system", "text": "no"}]}
            )

    def test_is_immutable(self):
        turn = ChatTurn(text="hi", model_id="llama2")
        with pytest.raises(ValidationError):
            turn.text = "changed"

    def test_long_text_is_accepted(self):
        turn = ChatTurn(text="あ" * 100_000, model_id="llama2")
        assert len(turn.text) == 100_000


# ---------------------------------------------------------------------------
# Token deltas
# ---------------------------------------------------------------------------


class TestDeltas:
    def test_wire_shapes_hide_discriminator(self):
        assert format_sse(ContentDelta(content="hi")) == 'data: {"content":"hi"}\n\n'
        assert format_sse(DoneDelta()) == 'data: {"done":true}\n\n'
        assert (
            format_sse(ErrorDelta(error="boom", code="X"))
            == 'data: {"error":"boom","code":"X"}\n\n'
        )

    def test_error_without_code_omits_it(self):
        assert format_sse(ErrorDelta(error="boom")) == 'data: {"error":"boom"}\n\n'

    def test_non_ascii_content_is_preserved(self):
        assert "こんにちは" in format_sse(ContentDelta(content="こんにちは"))

    def test_is_terminal(self):
        assert not is_terminal(ContentDelta(content="x"))
        assert is_terminal(DoneDelta())
        assert is_terminal(ErrorDelta(error="x"))

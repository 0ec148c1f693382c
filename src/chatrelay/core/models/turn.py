"""Incoming chat turn: the request body of ``POST /api/chat``.

Field names follow the service's own vocabulary; the keys sent by the
existing web client (``message``, ``model``, ``files``, ``useKnowledge``,
...) are accepted as aliases.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class HistoryMessage(BaseModel):
    """A single earlier message in the conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = Field(description="Message sender role")
    text: str = Field(
        description="Message content",
        validation_alias=AliasChoices("text", "content"),
    )


class Attachment(BaseModel):
    """An uploaded file carried inline with the turn."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(
        description="Client-side file name",
        validation_alias=AliasChoices("filename", "name"),
    )
    mime_type: str | None = Field(
        default=None,
        description="Declared MIME type (untrusted, may be absent)",
        validation_alias=AliasChoices("mime_type", "declaredMimeType", "type"),
    )
    payload: str = Field(
        default="",
        description="Inline text, base64 bytes, or a base64 data URL",
        validation_alias=AliasChoices("payload", "data"),
    )


class UserProfile(BaseModel):
    """Optional caller metadata injected ahead of the live turn."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    department: str = ""
    context: str = Field(
        default="",
        description="Free-form context about the user",
        validation_alias=AliasChoices("context", "freeformContext", "freeform_context"),
    )


class ChatTurn(BaseModel):
    """One user message plus everything needed to answer it."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(
        description="Live user message",
        validation_alias=AliasChoices("text", "message"),
    )
    model_id: str = Field(
        description="Requested model identifier, e.g. 'gpt-4o' or 'llama2'",
        validation_alias=AliasChoices("model_id", "modelId", "model"),
    )
    history: list[HistoryMessage] = Field(
        default_factory=list,
        description="Earlier messages, oldest first",
    )
    attachments: list[Attachment] = Field(
        default_factory=list,
        validation_alias=AliasChoices("attachments", "files"),
    )
    use_knowledge_base: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_knowledge_base", "useKnowledgeBase", "useKnowledge"),
    )
    use_persona: bool = Field(
        default=True,
        validation_alias=AliasChoices("use_persona", "usePersona", "usePersonality"),
    )
    user_profile: UserProfile | None = Field(
        default=None,
        validation_alias=AliasChoices("user_profile", "userProfile"),
    )

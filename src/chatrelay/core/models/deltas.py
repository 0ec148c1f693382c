"""Normalized token deltas emitted by every provider adapter.

The wire shape of each delta is the bare payload (``{"content": ...}``,
``{"done": true}``, ``{"error": ...}``); the ``type`` discriminator is
kept for in-process dispatch and excluded from serialization.
"""

from typing import Literal

from pydantic import BaseModel, Field

from .constants import TERMINAL_DELTA_TYPES


class ContentDelta(BaseModel):
    """A text increment of the assistant reply."""

    type: Literal["content"] = Field(default="content", exclude=True)
    content: str = Field(description="Text increment")


class DoneDelta(BaseModel):
    """Successful end of the reply."""

    type: Literal["done"] = Field(default="done", exclude=True)
    done: Literal[True] = True


class ErrorDelta(BaseModel):
    """Failed end of the reply."""

    type: Literal["error"] = Field(default="error", exclude=True)
    error: str = Field(description="Human-readable error message")
    code: str | None = Field(default=None, description="Error code")


TokenDelta = ContentDelta | DoneDelta | ErrorDelta


def is_terminal(delta: TokenDelta) -> bool:
    """Return whether *delta* ends the turn."""
    return delta.type in TERMINAL_DELTA_TYPES

"""Per-turn prompt material handed from the pipeline to an adapter."""

from dataclasses import dataclass, field

from .turn import HistoryMessage


@dataclass(frozen=True)
class InlineImage:
    """An image attachment passed through to image-capable backends."""

    filename: str
    mime_type: str
    data: str  # base64, no data-URL prefix


@dataclass(frozen=True)
class PersonaDecision:
    """The single persona draw made for one turn.

    Both the prompt hook and the response hook read this value; it is
    never re-rolled within a turn.
    """

    enabled: bool = False
    include_suffix: bool = False


@dataclass(frozen=True)
class TurnPrompt:
    """Augmented turn, ready for an adapter to render.

    ``message`` already carries knowledge, attachment and profile
    sections ahead of the live text.  ``history`` is the caller's full
    history; each adapter applies its own window.
    """

    model_id: str
    message: str
    history: tuple[HistoryMessage, ...] = ()
    images: tuple[InlineImage, ...] = ()
    persona: PersonaDecision = field(default_factory=PersonaDecision)
    preamble: str = ""

"""Context augmentation: knowledge, attachments and profile ahead of the turn text."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from chatrelay.infra.telemetry import (
    ATTR_AUGMENT_KNOWLEDGE,
    ATTR_AUGMENT_PROMPT_LEN,
    SPAN_CHAT_AUGMENT,
    tracer,
)

from .knowledge import KnowledgeHandle
from .metrics import KNOWLEDGE_LOOKUPS_TOTAL
from .models import ChatTurn, UserProfile

logger = logging.getLogger(__name__)

KNOWLEDGE_HEADER = "### Reference knowledge"
ATTACHMENTS_HEADER = "The following files are attached:"
PROFILE_PREFIX = "User profile:"
UNKNOWN_FIELD = "unknown"


def profile_line(profile: UserProfile | None) -> str | None:
    """Render the profile line, or ``None`` when there is no free-form context."""
    if profile is None:
        return None
    context = profile.context.strip()
    if not context:
        return None
    name = profile.name.strip() or UNKNOWN_FIELD
    department = profile.department.strip() or UNKNOWN_FIELD
    return f"{PROFILE_PREFIX} {name}, {department}, {context}"


class ContextAugmenter:
    """Builds the augmented user message for one turn.

    Section order, separated by blank lines: knowledge, attachments,
    profile, live text.  Persona and history are rendered later by the
    adapter, ahead of this message.
    """

    def __init__(self, knowledge: KnowledgeHandle | None = None) -> None:
        self._knowledge = knowledge

    async def knowledge_section(self, query: str) -> str | None:
        if self._knowledge is None:
            KNOWLEDGE_LOOKUPS_TOTAL.labels(outcome="unavailable").inc()
            return None
        try:
            results = await self._knowledge.search(query)
            context = await self._knowledge.generate_context(results)
        except Exception:
            logger.warning("Knowledge lookup failed; continuing without it", exc_info=True)
            KNOWLEDGE_LOOKUPS_TOTAL.labels(outcome="error").inc()
            return None
        if not context or not context.strip():
            KNOWLEDGE_LOOKUPS_TOTAL.labels(outcome="empty").inc()
            return None
        KNOWLEDGE_LOOKUPS_TOTAL.labels(outcome="hit").inc()
        logger.debug("Knowledge lookup returned %d results", len(results))
        return f"{KNOWLEDGE_HEADER}\n{context.strip()}"

    async def augment(self, turn: ChatTurn, fragments: Sequence[str]) -> str:
        with tracer.start_as_current_span(SPAN_CHAT_AUGMENT) as span:
            sections: list[str] = []

            if turn.use_knowledge_base:
                knowledge = await self.knowledge_section(turn.text)
                span.set_attribute(ATTR_AUGMENT_KNOWLEDGE, knowledge is not None)
                if knowledge:
                    sections.append(knowledge)

            if fragments:
                sections.append("\n\n".join([ATTACHMENTS_HEADER, *fragments]))

            profile = profile_line(turn.user_profile)
            if profile:
                sections.append(profile)

            sections.append(turn.text)
            message = "\n\n".join(sections)
            span.set_attribute(ATTR_AUGMENT_PROMPT_LEN, len(message))
            return message

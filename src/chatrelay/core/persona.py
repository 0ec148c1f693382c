"""Persona hooks: a preamble on the way out, a verbal tic on the way back.

One :class:`PersonaDecision` is drawn per turn by :meth:`Persona.decide`
and handed to both hooks, so the directive in the preamble and the
suffix on the reply always agree.
"""

from __future__ import annotations

import logging
import random
from collections.abc import AsyncGenerator
from contextlib import aclosing

from chatrelay.configs.persona import PersonaConfig

from .models import ContentDelta, PersonaDecision, TokenDelta

logger = logging.getLogger(__name__)

DISABLED = PersonaDecision(enabled=False, include_suffix=False)


class Persona:
    def __init__(
        self,
        config: PersonaConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or PersonaConfig()
        self._rng = rng or random.Random()

    def decide(self, enabled: bool) -> PersonaDecision:
        """Make the turn's single suffix draw; no draw when disabled."""
        if not enabled:
            return DISABLED
        include = self._rng.random() < self.config.suffix_probability
        logger.debug("Persona suffix draw: include=%s", include)
        return PersonaDecision(enabled=True, include_suffix=include)

    def preamble(self, decision: PersonaDecision) -> str:
        if not decision.enabled:
            return ""
        cfg = self.config
        directive = (
            cfg.include_suffix_directive
            if decision.include_suffix
            else cfg.omit_suffix_directive
        )
        lines = [cfg.intro.format(name=cfg.name, description=cfg.description)]
        lines.extend(f"- {line}" for line in cfg.character)
        lines.append(directive.format(suffix=cfg.suffix))
        return "\n".join(lines)

    def missing_suffix(self, text: str, decision: PersonaDecision) -> str:
        """Return the suffix still owed by *text*, or ``""``."""
        if not (decision.enabled and decision.include_suffix):
            return ""
        suffix = self.config.suffix
        if not suffix or text.rstrip().endswith(suffix):
            return ""
        return suffix

    def apply_response(self, text: str, decision: PersonaDecision) -> str:
        """Response hook over the full reply text."""
        return text + self.missing_suffix(text, decision)


async def apply_response_stream(
    deltas: AsyncGenerator[TokenDelta, None],
    persona: Persona,
    decision: PersonaDecision,
) -> AsyncGenerator[TokenDelta, None]:
    """Response hook for incremental replies.

    Accumulates streamed content and emits one extra content delta with
    the suffix right before ``done``.  Error endings are left untouched.
    """
    async with aclosing(deltas):
        if not (decision.enabled and decision.include_suffix):
            async for delta in deltas:
                yield delta
            return

        received: list[str] = []
        async for delta in deltas:
            if delta.type == "content":
                received.append(delta.content)
            elif delta.type == "done":
                suffix = persona.missing_suffix("".join(received), decision)
                if suffix:
                    yield ContentDelta(content=suffix)
            yield delta

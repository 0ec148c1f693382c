"""Domain models for the chat relay.

Re-exports every public symbol so imports like
``from chatrelay.core.models import ContentDelta`` keep working.
"""

from .constants import *  # noqa: F401, F403
from .deltas import *  # noqa: F401, F403
from .prompt import *  # noqa: F401, F403
from .turn import *  # noqa: F401, F403

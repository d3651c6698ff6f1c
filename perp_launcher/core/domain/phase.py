"""
Phase — lifecycle phases of one launch session.

Graph:
- DEPOSIT  -> BUILDING   (funding detected)
- BUILDING -> RUNNING    (pipeline succeeded)
- BUILDING -> DEPOSIT    (pipeline failed, fresh deposit required)
- RUNNING  -> ENDED      (status poll reports not running, or manual stop)
- ENDED    -> DEPOSIT    (restart)
"""

from enum import Enum
from typing import Dict, FrozenSet, Final


class Phase(str, Enum):
    """Launch session phase."""

    DEPOSIT = "deposit"
    BUILDING = "building"
    RUNNING = "running"
    ENDED = "ended"


ALLOWED_TRANSITIONS: Final[Dict[Phase, FrozenSet[Phase]]] = {
    Phase.DEPOSIT: frozenset({Phase.BUILDING}),
    Phase.BUILDING: frozenset({Phase.RUNNING, Phase.DEPOSIT}),
    Phase.RUNNING: frozenset({Phase.ENDED}),
    Phase.ENDED: frozenset({Phase.DEPOSIT}),
}


def is_allowed_transition(current: Phase, new: Phase) -> bool:
    """True if current -> new is an edge of the phase graph."""
    return new in ALLOWED_TRANSITIONS[current]

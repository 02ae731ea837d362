from __future__ import annotations

from enum import Enum
from typing import Optional

from .errors import ReentrancyBlocked


class GuardState(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"


class ReentrancyGuard:
    """Scoped non-reentrant section.

    Use as ``with guard:``. Entering while another holder is inside raises
    ``ReentrancyBlocked`` and leaves the state untouched; leaving always
    restores ``IDLE``, whether the body returned or raised.
    """

    def __init__(self):
        self.state = GuardState.IDLE

    @property
    def active(self) -> bool:
        return self.state is GuardState.IN_PROGRESS

    def __enter__(self) -> "ReentrancyGuard":
        if self.state is GuardState.IN_PROGRESS:
            raise ReentrancyBlocked("withdraw already in progress")
        self.state = GuardState.IN_PROGRESS
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.state = GuardState.IDLE
        return None

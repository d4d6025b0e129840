from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Lifecycle state of an attendance session stored in the database."""

    ACTIVE = "ACTIVE"
    ENDED = "ENDED"

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..sessions.model import Session


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's attendance claim within a session.

    ``session_id`` is a lookup key only. ``verified`` never goes back to False.
    """

    record_id: str
    session_id: str
    student_id: str
    student_name: str
    roll_number: str
    timestamp: datetime
    verified: bool = False
    verified_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionSummary:
    """Read-model for the dashboard status cards."""

    session: Session
    total_records: int
    verified_count: int
    otp_seconds_left: int

    @property
    def pending_count(self) -> int:
        return self.total_records - self.verified_count

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def insert_if_absent(self, record: AttendanceRecord) -> AttendanceRecord:
        """Atomically create the record unless one exists for (session, student).

        Returns whichever record is stored afterwards, so the loser of a race
        gets the winner's record.
        """

        raise NotImplementedError

    def get_for_student(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def mark_verified(self, session_id: str, student_id: str, *, verified_at: datetime) -> Optional[AttendanceRecord]:
        """Flip ``verified`` to True if it is not already.

        Returns the stored record, or None when the student never scanned.
        """

        raise NotImplementedError

    def list_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        """Records ordered by timestamp ascending."""

        raise NotImplementedError

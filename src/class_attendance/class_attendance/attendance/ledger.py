from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Sequence

from ..common.validators import require_max_length, require_non_empty
from ..core.constants import LONG_TEXT_MAX, SHORT_TEXT_MAX
from ..core.exceptions import NotFoundError
from .model import AttendanceRecord
from .repository import AttendanceRepository


class AttendanceLedger:
    """Per-session roster of attendance records.

    Scans are idempotent per (session, student) and verification only moves
    a record from pending to verified.
    """

    def __init__(self, records: AttendanceRepository):
        self._records = records

    def record_scan(
        self,
        *,
        session_id: str,
        student_id: str,
        student_name: str,
        roll_number: str,
        at: datetime,
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            record_id=uuid.uuid4().hex,
            session_id=require_non_empty(session_id, "sessionId"),
            student_id=require_max_length(require_non_empty(student_id, "studentId"), "studentId", SHORT_TEXT_MAX),
            student_name=require_max_length(require_non_empty(student_name, "studentName"), "studentName", LONG_TEXT_MAX),
            roll_number=require_max_length(require_non_empty(roll_number, "rollNumber"), "rollNumber", SHORT_TEXT_MAX),
            timestamp=at,
        )
        return self._records.insert_if_absent(record)

    def mark_verified(self, *, session_id: str, student_id: str, at: datetime) -> AttendanceRecord:
        rec = self._records.mark_verified(
            require_non_empty(session_id, "sessionId"),
            require_non_empty(student_id, "studentId"),
            verified_at=at,
        )
        if not rec:
            raise NotFoundError("No scan recorded for this student in this session")
        return rec

    def get(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        return self._records.get_for_student(str(session_id).strip(), str(student_id).strip())

    def list_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        return list(self._records.list_by_session(session_id))

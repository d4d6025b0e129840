from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from .model import AttendanceRecord
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    def __init__(self):
        self._by_session_student: dict[tuple[str, str], AttendanceRecord] = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, record: AttendanceRecord) -> AttendanceRecord:
        key = (record.session_id, record.student_id)
        with self._lock:
            existing = self._by_session_student.get(key)
            if existing:
                return existing
            self._by_session_student[key] = record
            return record

    def get_for_student(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._by_session_student.get((session_id, student_id))

    def mark_verified(self, session_id: str, student_id: str, *, verified_at: datetime) -> Optional[AttendanceRecord]:
        key = (session_id, student_id)
        with self._lock:
            rec = self._by_session_student.get(key)
            if not rec:
                return None
            if not rec.verified:
                rec = replace(rec, verified=True, verified_at=verified_at)
                self._by_session_student[key] = rec
            return rec

    def list_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._by_session_student.values() if r.session_id == session_id]
        items.sort(key=lambda r: (r.timestamp, r.record_id))
        return items

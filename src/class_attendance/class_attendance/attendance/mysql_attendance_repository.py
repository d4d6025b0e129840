from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, session_id, student_id, student_name, roll_number,
    `timestamp`, verified, verified_at
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=r["record_id"],
        session_id=r["session_id"],
        student_id=r["student_id"],
        student_name=r["student_name"],
        roll_number=r["roll_number"],
        timestamp=from_db_datetime(r["timestamp"]),
        verified=bool(r["verified"]),
        verified_at=from_db_datetime(r.get("verified_at")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """attendance_records access; UNIQUE(session_id, student_id) backs idempotent scans."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, cur, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE session_id=%s AND student_id=%s
            """,
            (session_id, student_id),
        )
        r = fetchone(cur)
        return _to_record(r) if r else None

    def insert_if_absent(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            # No-op on duplicate key: the first scan wins, later scans read it back.
            cur.execute(
                """
                INSERT INTO attendance_records(
                    record_id, session_id, student_id, student_name, roll_number,
                    `timestamp`, verified, verified_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE record_id=record_id
                """,
                (
                    record.record_id,
                    record.session_id,
                    record.student_id,
                    record.student_name,
                    record.roll_number,
                    to_db_datetime(record.timestamp),
                    int(record.verified),
                    to_db_datetime(record.verified_at),
                ),
            )
            stored = self._select(cur, record.session_id, record.student_id)
            return stored or record

    def get_for_student(self, session_id: str, student_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, session_id, student_id)

    def mark_verified(self, session_id: str, student_id: str, *, verified_at: datetime) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET verified=1, verified_at=%s
                WHERE session_id=%s AND student_id=%s AND verified=0
                """,
                (to_db_datetime(verified_at), session_id, student_id),
            )
            return self._select(cur, session_id, student_id)

    def list_by_session(self, session_id: str) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY `timestamp` ASC, record_id ASC
                """,
                (session_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.enums import SessionState
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import ER_DUP_ENTRY, db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import Session
from .repository import SessionRepository

_COLUMNS = """
    session_id, teacher_id, subject, section, course, qr_token,
    state, otp, otp_expires_at, created_at, ended_at
"""


def _to_session(r: Dict[str, Any]) -> Session:
    return Session(
        session_id=r["session_id"],
        teacher_id=r["teacher_id"],
        subject=r["subject"],
        section=r["section"],
        course=r["course"],
        qr_token=r["qr_token"],
        state=SessionState(r["state"]),
        created_at=from_db_datetime(r["created_at"]),
        otp=r.get("otp"),
        otp_expires_at=from_db_datetime(r.get("otp_expires_at")),
        ended_at=from_db_datetime(r.get("ended_at")),
    )


class MySQLSessionRepository(SessionRepository):
    """Sessions table access.

    OTP replacement and ending are single conditional UPDATE statements; the
    follow-up SELECT runs in the same transaction while the row lock is held.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, cur, session_id: str) -> Optional[Session]:
        cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (session_id,))
        r = fetchone(cur)
        return _to_session(r) if r else None

    def insert(self, session: Session) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        session_id, teacher_id, subject, section, course, qr_token,
                        state, otp, otp_expires_at, created_at, ended_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session.session_id,
                        session.teacher_id,
                        session.subject,
                        session.section,
                        session.course,
                        session.qr_token,
                        session.state.value,
                        session.otp,
                        to_db_datetime(session.otp_expires_at),
                        to_db_datetime(session.created_at),
                        to_db_datetime(session.ended_at),
                    ),
                )
        except mysql.connector.IntegrityError as e:
            if getattr(e, "errno", None) == ER_DUP_ENTRY:
                raise ValidationError("Session already exists") from e
            raise

    def get_by_id(self, session_id: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, session_id)

    def set_otp_if_active(self, session_id: str, *, otp: str, otp_expires_at: datetime) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET otp=%s, otp_expires_at=%s
                WHERE session_id=%s AND state=%s
                """,
                (otp, to_db_datetime(otp_expires_at), session_id, SessionState.ACTIVE.value),
            )
            if cur.rowcount == 0:
                return None
            return self._select(cur, session_id)

    def end_if_active(self, session_id: str, *, ended_at: datetime) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET state=%s, otp=NULL, otp_expires_at=NULL, ended_at=%s
                WHERE session_id=%s AND state=%s
                """,
                (SessionState.ENDED.value, to_db_datetime(ended_at), session_id, SessionState.ACTIVE.value),
            )
            if cur.rowcount == 0:
                return None
            return self._select(cur, session_id)

    def list_for_teacher(self, teacher_id: str) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE teacher_id=%s
                ORDER BY created_at DESC
                """,
                (teacher_id,),
            )
            return [_to_session(r) for r in fetchall(cur)]

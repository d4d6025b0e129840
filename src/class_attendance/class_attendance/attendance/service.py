from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional, Sequence

from ..common.clock import Clock, SystemClock
from ..common.validators import require_non_empty
from ..core.constants import OTP_VALIDITY_SECONDS
from ..core.exceptions import AuthorizationError, InvalidOrExpiredOtpError, NotFoundError, SessionEndedError
from ..otp.generator import OtpGenerator, OtpGrant
from ..sessions.model import Session
from ..sessions.store import SessionStore
from .ledger import AttendanceLedger
from .model import AttendanceRecord, SessionSummary

logger = logging.getLogger(__name__)


class AttendanceService:
    """Use cases of the teacher dashboard and the student client.

    Scanning the QR code only records presence-intent; a record becomes
    verified when the student submits the OTP that is live at that moment.
    """

    def __init__(
        self,
        store: SessionStore,
        ledger: AttendanceLedger,
        otp_generator: OtpGenerator | None = None,
        *,
        clock: Clock | None = None,
        otp_validity_seconds: int = OTP_VALIDITY_SECONDS,
    ):
        self._store = store
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._otp = otp_generator or OtpGenerator(self._clock)
        self._otp_validity = timedelta(seconds=int(otp_validity_seconds))

    @staticmethod
    def _check_owner(session: Session, teacher_id: Optional[str]) -> None:
        if teacher_id is None:
            return
        if str(teacher_id).strip() != session.teacher_id:
            raise AuthorizationError("Only the teacher who created this session can manage it")

    def create_session(self, *, teacher_id: str, subject: str, section: str, course: str) -> Session:
        return self._store.create(teacher_id=teacher_id, subject=subject, section=section, course=course)

    def get_session(self, session_id: str) -> Session:
        return self._store.get(session_id)

    def list_teacher_sessions(self, teacher_id: str) -> Sequence[Session]:
        return self._store.list_for_teacher(teacher_id)

    def generate_otp(self, session_id: str, *, teacher_id: Optional[str] = None) -> OtpGrant:
        session = self._store.get(session_id)
        self._check_owner(session, teacher_id)
        if not session.is_active:
            raise SessionEndedError("Session has ended")

        grant = self._otp.generate(self._otp_validity)
        self._store.set_otp(session.session_id, code=grant.code, expires_at=grant.expires_at)
        logger.info("otp issued for session %s (expires %s)", session.session_id, grant.expires_at.isoformat())
        return grant

    def end_session(self, session_id: str, *, teacher_id: Optional[str] = None) -> Session:
        session = self._store.get(session_id)
        self._check_owner(session, teacher_id)
        return self._store.end(session.session_id)

    def submit_attendance(
        self,
        *,
        session_id: str,
        student_id: str,
        student_name: str,
        roll_number: str,
    ) -> AttendanceRecord:
        # Scan time is taken before the state read. The scanned qr_token equals the session id.
        at = self._clock.now()
        session = self._store.get(require_non_empty(session_id, "sessionId"))
        if not session.is_active:
            raise SessionEndedError("Session has ended")

        return self._ledger.record_scan(
            session_id=session.session_id,
            student_id=student_id,
            student_name=student_name,
            roll_number=roll_number,
            at=at,
        )

    def verify_otp(self, *, session_id: str, student_id: str, code: str) -> AttendanceRecord:
        session = self._store.get(require_non_empty(session_id, "sessionId"))
        student_id = require_non_empty(student_id, "studentId")
        code = require_non_empty(code, "code")

        if not self._ledger.get(session.session_id, student_id):
            raise NotFoundError("No scan recorded for this student in this session")

        now = self._clock.now()
        if not self._store.is_otp_valid(session.session_id, code, now):
            logger.warning("rejected otp for session %s student %s", session.session_id, student_id)
            raise InvalidOrExpiredOtpError("Invalid or expired OTP")

        return self._ledger.mark_verified(session_id=session.session_id, student_id=student_id, at=now)

    def list_records(self, session_id: str) -> Sequence[AttendanceRecord]:
        session = self._store.get(session_id)
        return self._ledger.list_by_session(session.session_id)

    def get_session_summary(self, session_id: str) -> SessionSummary:
        """Roster counts plus the OTP countdown, computed from server time."""

        session = self._store.get(session_id)
        records = self._ledger.list_by_session(session.session_id)

        seconds_left = 0
        if session.is_active and session.has_otp:
            remaining = (session.otp_expires_at - self._clock.now()).total_seconds()
            seconds_left = max(0, int(remaining))

        return SessionSummary(
            session=session,
            total_records=len(records),
            verified_count=sum(1 for r in records if r.verified),
            otp_seconds_left=seconds_left,
        )

    def build_export_rows(self, session_id: str) -> list[dict]:
        session = self._store.get(session_id)
        rows = []
        for r in self._ledger.list_by_session(session.session_id):
            rows.append(
                {
                    "course": session.course,
                    "subject": session.subject,
                    "section": session.section,
                    "student_id": r.student_id,
                    "student_name": r.student_name,
                    "roll_number": r.roll_number,
                    "scanned_at": r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                    "verified": "Yes" if r.verified else "No",
                    "verified_at": r.verified_at.strftime("%Y-%m-%d %H:%M:%S") if r.verified_at else "-",
                }
            )
        return rows

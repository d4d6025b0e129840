from __future__ import annotations

import hmac
import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence

from ..common.clock import Clock, SystemClock
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import LONG_TEXT_MAX, SHORT_TEXT_MAX
from ..core.enums import SessionState
from ..core.exceptions import NotFoundError, SessionEndedError
from .model import Session
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def _key(session_id: str) -> str:
    return str(session_id or "").strip()


class SessionStore:
    """Owns session state transitions (ACTIVE -> ENDED) and the live OTP.

    ``is_otp_valid`` is the single authoritative OTP check; it only trusts
    the time it is given, which callers take from the server clock.
    """

    def __init__(self, sessions: SessionRepository, *, clock: Optional[Clock] = None):
        self._sessions = sessions
        self._clock = clock or SystemClock()

    def create(self, *, teacher_id: str, subject: str, section: str, course: str) -> Session:
        teacher_id = require_max_length(require_non_empty(teacher_id, "teacherId"), "teacherId", SHORT_TEXT_MAX)
        subject = require_max_length(require_non_empty(subject, "subject"), "subject", LONG_TEXT_MAX)
        section = require_max_length(require_non_empty(section, "section"), "section", SHORT_TEXT_MAX)
        course = require_max_length(require_non_empty(course, "course"), "course", SHORT_TEXT_MAX)

        session_id = uuid.uuid4().hex
        session = Session(
            session_id=session_id,
            teacher_id=teacher_id,
            subject=subject,
            section=section,
            course=course,
            qr_token=session_id,
            state=SessionState.ACTIVE,
            created_at=self._clock.now(),
        )
        self._sessions.insert(session)
        logger.info("session %s created by teacher %s (%s %s/%s)", session_id, teacher_id, course, subject, section)
        return session

    def get(self, session_id: str) -> Session:
        session = self._sessions.get_by_id(_key(session_id))
        if not session:
            raise NotFoundError("Session not found")
        return session

    def set_otp(self, session_id: str, *, code: str, expires_at: datetime) -> Session:
        updated = self._sessions.set_otp_if_active(_key(session_id), otp=code, otp_expires_at=expires_at)
        if updated:
            return updated

        # Nothing changed: either unknown or already ended.
        self.get(session_id)
        raise SessionEndedError("Session has ended")

    def end(self, session_id: str) -> Session:
        updated = self._sessions.end_if_active(_key(session_id), ended_at=self._clock.now())
        if updated:
            logger.info("session %s ended", session_id)
            return updated
        return self.get(session_id)

    def is_otp_valid(self, session_id: str, code: str, at: datetime) -> bool:
        session = self._sessions.get_by_id(_key(session_id))
        if not session or not session.is_active or not session.has_otp:
            return False
        if not hmac.compare_digest(str(code or "").encode(), session.otp.encode()):
            return False
        return at < session.otp_expires_at

    def list_for_teacher(self, teacher_id: str) -> Sequence[Session]:
        teacher_id = require_non_empty(teacher_id, "teacherId")
        return list(self._sessions.list_for_teacher(teacher_id))

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import SessionState


@dataclass(frozen=True)
class Session:
    """Domain entity: one teacher-initiated attendance window for a class meeting.

    ``otp`` and ``otp_expires_at`` are always set together; an ENDED session
    never carries an OTP.
    """

    session_id: str
    teacher_id: str
    subject: str
    section: str
    course: str
    qr_token: str
    state: SessionState
    created_at: datetime
    otp: Optional[str] = None
    otp_expires_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def has_otp(self) -> bool:
        return self.otp is not None and self.otp_expires_at is not None

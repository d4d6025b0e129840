from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Session


class SessionRepository(Protocol):
    """Persistence interface for sessions.

    Every method is atomic at the granularity of one session row, so readers
    never observe a half-written ``(otp, otp_expires_at)`` pair.
    """

    def insert(self, session: Session) -> None:
        raise NotImplementedError

    def get_by_id(self, session_id: str) -> Optional[Session]:
        raise NotImplementedError

    def set_otp_if_active(self, session_id: str, *, otp: str, otp_expires_at: datetime) -> Optional[Session]:
        """Replace the OTP pair of an ACTIVE session.

        Returns the updated session, or None when the session is missing or
        no longer active.
        """

        raise NotImplementedError

    def end_if_active(self, session_id: str, *, ended_at: datetime) -> Optional[Session]:
        """Move an ACTIVE session to ENDED and clear its OTP pair.

        Returns the updated session, or None when nothing was changed.
        """

        raise NotImplementedError

    def list_for_teacher(self, teacher_id: str) -> Sequence[Session]:
        raise NotImplementedError

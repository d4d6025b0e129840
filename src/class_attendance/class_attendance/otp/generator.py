from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.clock import Clock, SystemClock
from ..core.constants import OTP_DIGITS, OTP_VALIDITY_SECONDS
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class OtpGrant:
    code: str
    expires_at: datetime


class OtpGenerator:
    """Mints fixed-width numeric one-time codes.

    Codes are drawn uniformly over the whole digit space with ``secrets`` (a
    predictable code is an attendance-fraud vector) and keep their leading
    zeros. Nothing is persisted here; the caller stores the grant.
    """

    def __init__(self, clock: Optional[Clock] = None, *, digits: int = OTP_DIGITS):
        if int(digits) < 1:
            raise ValidationError("OTP digits must be at least 1")
        self._clock = clock or SystemClock()
        self._digits = int(digits)

    def generate(self, validity: timedelta = timedelta(seconds=OTP_VALIDITY_SECONDS)) -> OtpGrant:
        if validity <= timedelta(0):
            raise ValidationError("OTP validity window must be positive")

        code = str(secrets.randbelow(10**self._digits)).zfill(self._digits)
        return OtpGrant(code=code, expires_at=self._clock.now() + validity)

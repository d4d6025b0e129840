from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.ledger import AttendanceLedger
from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.clock import Clock, SystemClock
from .core.constants import OTP_DIGITS, OTP_VALIDITY_SECONDS
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .otp.generator import OtpGenerator
from .sessions.memory_session_repository import InMemorySessionRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.store import SessionStore


@dataclass(frozen=True)
class Container:
    clock: Clock

    sessions_repo: SessionRepository
    records_repo: AttendanceRepository

    session_store: SessionStore
    ledger: AttendanceLedger
    otp_generator: OtpGenerator
    attendance_service: AttendanceService


def build_container(
    *,
    storage_backend: str = "mysql",
    db_config: Optional[dict] = None,
    clock: Optional[Clock] = None,
    otp_digits: int = OTP_DIGITS,
    otp_validity_seconds: int = OTP_VALIDITY_SECONDS,
) -> Container:
    clock = clock or SystemClock()

    backend = (storage_backend or "mysql").lower()
    if backend == "memory":
        sessions_repo = InMemorySessionRepository()
        records_repo = InMemoryAttendanceRepository()
    elif backend == "mysql":
        if not db_config:
            raise ValidationError("DB_CONFIG is required for the mysql storage backend")
        conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
        sessions_repo = MySQLSessionRepository(conn)
        records_repo = MySQLAttendanceRepository(conn)
    else:
        raise ValidationError(f"Unknown storage backend: {storage_backend}")

    session_store = SessionStore(sessions_repo, clock=clock)
    ledger = AttendanceLedger(records_repo)
    otp_generator = OtpGenerator(clock, digits=otp_digits)
    attendance_service = AttendanceService(
        session_store,
        ledger,
        otp_generator,
        clock=clock,
        otp_validity_seconds=otp_validity_seconds,
    )

    return Container(
        clock=clock,
        sessions_repo=sessions_repo,
        records_repo=records_repo,
        session_store=session_store,
        ledger=ledger,
        otp_generator=otp_generator,
        attendance_service=attendance_service,
    )

from __future__ import annotations

from datetime import timedelta

import pytest

from src.class_attendance.class_attendance.attendance.ledger import AttendanceLedger
from src.class_attendance.class_attendance.attendance.memory_attendance_repository import (
    InMemoryAttendanceRepository,
)
from src.class_attendance.class_attendance.core.exceptions import NotFoundError, ValidationError


@pytest.fixture()
def ledger():
    return AttendanceLedger(InMemoryAttendanceRepository())


def test_record_scan_creates_pending_record(ledger, fixed_now):
    rec = ledger.record_scan(session_id="S", student_id="stu1", student_name="Alice", roll_number="R1", at=fixed_now)

    assert rec.verified is False
    assert rec.verified_at is None
    assert rec.timestamp == fixed_now
    assert rec.session_id == "S"


def test_rescan_returns_original_record(ledger, fixed_now):
    first = ledger.record_scan(session_id="S", student_id="stu1", student_name="Alice", roll_number="R1", at=fixed_now)
    second = ledger.record_scan(
        session_id="S",
        student_id="stu1",
        student_name="Alice B.",
        roll_number="R9",
        at=fixed_now + timedelta(seconds=30),
    )

    assert second == first
    assert len(ledger.list_by_session("S")) == 1


def test_same_student_in_two_sessions_gets_two_records(ledger, fixed_now):
    ledger.record_scan(session_id="S1", student_id="stu1", student_name="Alice", roll_number="R1", at=fixed_now)
    ledger.record_scan(session_id="S2", student_id="stu1", student_name="Alice", roll_number="R1", at=fixed_now)

    assert len(ledger.list_by_session("S1")) == 1
    assert len(ledger.list_by_session("S2")) == 1


def test_record_scan_requires_fields(ledger, fixed_now):
    with pytest.raises(ValidationError):
        ledger.record_scan(session_id="S", student_id="", student_name="Alice", roll_number="R1", at=fixed_now)


def test_record_scan_rejects_values_wider_than_columns(ledger, fixed_now):
    with pytest.raises(ValidationError):
        ledger.record_scan(session_id="S", student_id="s" * 65, student_name="Alice", roll_number="R1", at=fixed_now)
    with pytest.raises(ValidationError):
        ledger.record_scan(session_id="S", student_id="stu1", student_name="A" * 256, roll_number="R1", at=fixed_now)
    with pytest.raises(ValidationError):
        ledger.record_scan(session_id="S", student_id="stu1", student_name="Alice", roll_number="R" * 65, at=fixed_now)

    rec = ledger.record_scan(
        session_id="S", student_id="s" * 64, student_name="A" * 255, roll_number="R" * 64, at=fixed_now
    )
    assert len(rec.student_id) == 64
    assert ledger.list_by_session("S") == [rec]


def test_mark_verified_is_idempotent(ledger, fixed_now):
    ledger.record_scan(session_id="S", student_id="stu1", student_name="Alice", roll_number="R1", at=fixed_now)

    first = ledger.mark_verified(session_id="S", student_id="stu1", at=fixed_now + timedelta(seconds=5))
    second = ledger.mark_verified(session_id="S", student_id="stu1", at=fixed_now + timedelta(seconds=9))

    assert first.verified is True
    assert second == first
    assert second.verified_at == fixed_now + timedelta(seconds=5)


def test_mark_verified_without_scan_raises(ledger, fixed_now):
    with pytest.raises(NotFoundError):
        ledger.mark_verified(session_id="S", student_id="ghost", at=fixed_now)


def test_list_by_session_orders_by_timestamp(ledger, fixed_now):
    ledger.record_scan(session_id="S", student_id="late", student_name="C", roll_number="R3", at=fixed_now + timedelta(seconds=9))
    ledger.record_scan(session_id="S", student_id="early", student_name="A", roll_number="R1", at=fixed_now)
    ledger.record_scan(session_id="S", student_id="mid", student_name="B", roll_number="R2", at=fixed_now + timedelta(seconds=3))

    assert [r.student_id for r in ledger.list_by_session("S")] == ["early", "mid", "late"]
    assert ledger.list_by_session("other") == []

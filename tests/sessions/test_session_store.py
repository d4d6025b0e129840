from __future__ import annotations

from datetime import timedelta

import pytest

from src.class_attendance.class_attendance.core.enums import SessionState
from src.class_attendance.class_attendance.core.exceptions import NotFoundError, SessionEndedError, ValidationError
from src.class_attendance.class_attendance.sessions.memory_session_repository import InMemorySessionRepository
from src.class_attendance.class_attendance.sessions.store import SessionStore


@pytest.fixture()
def store(clock):
    return SessionStore(InMemorySessionRepository(), clock=clock)


def _create(store):
    return store.create(teacher_id="T1", subject="Algorithms", section="A", course="CS301")


def test_create_builds_active_session_without_otp(store, fixed_now):
    s = _create(store)

    assert s.state == SessionState.ACTIVE
    assert s.qr_token == s.session_id
    assert s.otp is None and s.otp_expires_at is None
    assert s.created_at == fixed_now
    assert store.get(s.session_id) == s


def test_create_trims_and_requires_every_field(store):
    s = store.create(teacher_id=" T1 ", subject=" Algorithms ", section="A", course="CS301")
    assert s.teacher_id == "T1"
    assert s.subject == "Algorithms"

    for missing in ("teacher_id", "subject", "section", "course"):
        fields = dict(teacher_id="T1", subject="Algorithms", section="A", course="CS301")
        fields[missing] = "  "
        with pytest.raises(ValidationError):
            store.create(**fields)


def test_create_rejects_values_wider_than_columns(store):
    too_long = {"teacher_id": 65, "subject": 256, "section": 65, "course": 65}
    for field, size in too_long.items():
        fields = dict(teacher_id="T1", subject="Algorithms", section="A", course="CS301")
        fields[field] = "x" * size
        with pytest.raises(ValidationError):
            store.create(**fields)

    s = store.create(teacher_id="T" * 64, subject="S" * 255, section="A" * 64, course="C" * 64)
    assert store.get(s.session_id) == s


def test_get_unknown_session_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get("does-not-exist")


def test_set_otp_replaces_previous_code(store, fixed_now):
    s = _create(store)
    store.set_otp(s.session_id, code="111111", expires_at=fixed_now + timedelta(seconds=20))
    updated = store.set_otp(s.session_id, code="222222", expires_at=fixed_now + timedelta(seconds=25))

    assert updated.otp == "222222"
    assert not store.is_otp_valid(s.session_id, "111111", fixed_now)
    assert store.is_otp_valid(s.session_id, "222222", fixed_now)


def test_set_otp_on_ended_session_raises(store, fixed_now):
    s = _create(store)
    store.end(s.session_id)

    with pytest.raises(SessionEndedError):
        store.set_otp(s.session_id, code="123456", expires_at=fixed_now + timedelta(seconds=20))

    with pytest.raises(NotFoundError):
        store.set_otp("missing", code="123456", expires_at=fixed_now + timedelta(seconds=20))


def test_end_clears_otp_and_is_idempotent(store, clock, fixed_now):
    s = _create(store)
    store.set_otp(s.session_id, code="123456", expires_at=fixed_now + timedelta(seconds=20))

    ended = store.end(s.session_id)
    assert ended.state == SessionState.ENDED
    assert ended.otp is None and ended.otp_expires_at is None
    assert ended.ended_at == fixed_now

    clock.advance(seconds=60)
    again = store.end(s.session_id)
    assert again == ended


def test_is_otp_valid_expiry_boundary(store, fixed_now):
    s = _create(store)
    expires_at = fixed_now + timedelta(seconds=20)
    store.set_otp(s.session_id, code="482913", expires_at=expires_at)

    assert store.is_otp_valid(s.session_id, "482913", expires_at - timedelta(microseconds=1))
    assert not store.is_otp_valid(s.session_id, "482913", expires_at)
    assert not store.is_otp_valid(s.session_id, "482913", expires_at + timedelta(seconds=1))


def test_is_otp_valid_requires_exact_match(store, fixed_now):
    s = _create(store)
    store.set_otp(s.session_id, code="012345", expires_at=fixed_now + timedelta(seconds=20))

    assert not store.is_otp_valid(s.session_id, "12345", fixed_now)
    assert not store.is_otp_valid(s.session_id, "0123456", fixed_now)
    assert not store.is_otp_valid(s.session_id, "", fixed_now)
    assert not store.is_otp_valid("missing", "012345", fixed_now)


def test_is_otp_valid_false_without_otp(store, fixed_now):
    s = _create(store)
    assert not store.is_otp_valid(s.session_id, "000000", fixed_now)


def test_list_for_teacher_newest_first(store, clock):
    first = _create(store)
    clock.advance(seconds=10)
    second = _create(store)
    store.create(teacher_id="T2", subject="Networks", section="B", course="CS302")

    assert [s.session_id for s in store.list_for_teacher("T1")] == [second.session_id, first.session_id]

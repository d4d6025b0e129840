from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.class_attendance.class_attendance.common.clock import FixedClock
from src.class_attendance.class_attendance.container import build_container
from src.class_attendance.class_attendance.main import create_app


@pytest.fixture()
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture()
def container(clock):
    return build_container(storage_backend="memory", clock=clock)


@pytest.fixture()
def service(container):
    return container.attendance_service


@pytest.fixture()
def app(clock, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app({"STORAGE_BACKEND": "memory", "AUTO_INIT_DB": False}, clock=clock)


@pytest.fixture()
def client(app):
    return app.test_client()

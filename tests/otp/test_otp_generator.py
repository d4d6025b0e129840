from __future__ import annotations

from datetime import timedelta

import pytest

from src.class_attendance.class_attendance.core.exceptions import ValidationError
from src.class_attendance.class_attendance.otp import generator
from src.class_attendance.class_attendance.otp.generator import OtpGenerator


def test_code_is_fixed_width_numeric(clock):
    gen = OtpGenerator(clock)

    for _ in range(200):
        grant = gen.generate()
        assert len(grant.code) == 6
        assert grant.code.isdigit()


def test_leading_zeros_are_kept(clock, monkeypatch):
    monkeypatch.setattr(generator.secrets, "randbelow", lambda n: 42)

    grant = OtpGenerator(clock).generate()

    assert grant.code == "000042"


def test_expiry_is_clock_plus_window(clock, fixed_now):
    grant = OtpGenerator(clock).generate()
    assert grant.expires_at == fixed_now + timedelta(seconds=20)

    grant = OtpGenerator(clock).generate(timedelta(seconds=90))
    assert grant.expires_at == fixed_now + timedelta(seconds=90)


def test_custom_digit_count(clock):
    grant = OtpGenerator(clock, digits=8).generate()
    assert len(grant.code) == 8


def test_rejects_bad_configuration(clock):
    with pytest.raises(ValidationError):
        OtpGenerator(clock, digits=0)

    with pytest.raises(ValidationError):
        OtpGenerator(clock).generate(timedelta(0))

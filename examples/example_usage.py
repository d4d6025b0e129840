"""Example: drive the service layer directly (no Flask, in-memory storage).

Walks through one class meeting: scan, OTP, verify, and a late verify after
the OTP window has closed.
"""

from datetime import datetime, timezone

from src.class_attendance.class_attendance.common.clock import FixedClock
from src.class_attendance.class_attendance.container import build_container
from src.class_attendance.class_attendance.core.exceptions import InvalidOrExpiredOtpError


def main():
    clock = FixedClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))
    svc = build_container(storage_backend="memory", clock=clock).attendance_service

    session = svc.create_session(teacher_id="T1", subject="Algorithms", section="A", course="CS301")
    print("QR payload:", session.qr_token)

    svc.submit_attendance(session_id=session.qr_token, student_id="stu1", student_name="Alice", roll_number="R1")
    svc.submit_attendance(session_id=session.qr_token, student_id="stu2", student_name="Bob", roll_number="R2")

    grant = svc.generate_otp(session.session_id)
    print("OTP:", grant.code, "expires", grant.expires_at.isoformat())

    clock.advance(seconds=5)
    svc.verify_otp(session_id=session.session_id, student_id="stu1", code=grant.code)

    clock.advance(seconds=20)
    try:
        svc.verify_otp(session_id=session.session_id, student_id="stu2", code=grant.code)
    except InvalidOrExpiredOtpError as e:
        print("stu2:", e)

    svc.end_session(session.session_id)
    for rec in svc.list_records(session.session_id):
        print(rec.roll_number, rec.student_name, "verified" if rec.verified else "pending")


if __name__ == "__main__":
    main()

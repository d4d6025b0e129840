from __future__ import annotations

import csv
import io
from functools import wraps

import pandas as pd
import qrcode
from flask import Flask, jsonify, request, send_file
from werkzeug.utils import secure_filename

from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    InvalidOrExpiredOtpError,
    NotFoundError,
    SessionEndedError,
    ValidationError,
)
from ..container import Container
from ..otp.generator import OtpGrant
from ..sessions.model import Session
from .model import AttendanceRecord, SessionSummary

_ERROR_STATUS = (
    (ValidationError, "InvalidInput", 400),
    (InvalidOrExpiredOtpError, "InvalidOrExpiredOtp", 400),
    (AuthorizationError, "Forbidden", 403),
    (NotFoundError, "NotFound", 404),
    (SessionEndedError, "SessionEnded", 409),
)

EXPORT_FIELDS = [
    "course",
    "subject",
    "section",
    "student_id",
    "student_name",
    "roll_number",
    "scanned_at",
    "verified",
    "verified_at",
]

EXPORT_HEADERS = {
    "course": "Course",
    "subject": "Subject",
    "section": "Section",
    "student_id": "Student ID",
    "student_name": "Student Name",
    "roll_number": "Roll Number",
    "scanned_at": "Scanned At (UTC)",
    "verified": "Verified",
    "verified_at": "Verified At (UTC)",
}

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Free-text columns typed by clients; spreadsheet apps evaluate these prefixes.
_TEXT_FIELDS = ("course", "subject", "section", "student_id", "student_name", "roll_number")
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _spreadsheet_safe(row: dict) -> dict:
    safe = dict(row)
    for field in _TEXT_FIELDS:
        value = safe.get(field)
        if isinstance(value, str) and value.startswith(_FORMULA_PREFIXES):
            safe[field] = "'" + value
    return safe


def _iso(value):
    return value.isoformat() if value else None


def session_to_json(s: Session) -> dict:
    # The OTP value itself is only returned by generate-otp.
    return {
        "id": s.session_id,
        "teacherId": s.teacher_id,
        "subject": s.subject,
        "section": s.section,
        "course": s.course,
        "qrToken": s.qr_token,
        "state": s.state.value,
        "isActive": s.is_active,
        "hasOtp": s.has_otp,
        "expiresAt": _iso(s.otp_expires_at),
        "createdAt": _iso(s.created_at),
        "endedAt": _iso(s.ended_at),
    }


def record_to_json(r: AttendanceRecord) -> dict:
    return {
        "id": r.record_id,
        "sessionId": r.session_id,
        "studentId": r.student_id,
        "studentName": r.student_name,
        "rollNumber": r.roll_number,
        "timestamp": _iso(r.timestamp),
        "verified": r.verified,
        "verifiedAt": _iso(r.verified_at),
    }


def summary_to_json(summary: SessionSummary) -> dict:
    return {
        "totalRecords": summary.total_records,
        "verifiedCount": summary.verified_count,
        "pendingCount": summary.pending_count,
        "otpSecondsLeft": summary.otp_seconds_left,
    }


def grant_to_json(grant: OtpGrant) -> dict:
    return {"otp": grant.code, "expiresAt": _iso(grant.expires_at)}


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def json_api(view):
        """Translate domain errors into the JSON error envelope."""

        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                for exc_type, kind, status in _ERROR_STATUS:
                    if isinstance(e, exc_type):
                        return jsonify({"success": False, "error": kind, "message": str(e)}), status
                return jsonify({"success": False, "error": "DomainError", "message": str(e)}), 400
            except Exception as e:
                app.logger.exception("unhandled error in %s", request.path)
                message = f"Internal error: {e}" if app.config.get("DEBUG") else "Internal server error"
                return jsonify({"success": False, "error": "Internal", "message": message}), 500

        return wrapper

    def _body() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/create-session", methods=["POST"], endpoint="api_create_session")
    @json_api
    def api_create_session():
        data = _body()
        session = service.create_session(
            teacher_id=data.get("teacherId", ""),
            subject=data.get("subject", ""),
            section=data.get("section", ""),
            course=data.get("course", ""),
        )
        return jsonify({"success": True, "session": session_to_json(session)}), 201

    @app.route("/api/generate-otp", methods=["POST"], endpoint="api_generate_otp")
    @json_api
    def api_generate_otp():
        data = _body()
        grant = service.generate_otp(data.get("sessionId", ""), teacher_id=data.get("teacherId") or None)
        return jsonify({"success": True, **grant_to_json(grant)})

    @app.route("/api/end-session", methods=["POST"], endpoint="api_end_session")
    @json_api
    def api_end_session():
        data = _body()
        service.end_session(data.get("sessionId", ""), teacher_id=data.get("teacherId") or None)
        return jsonify({"success": True})

    @app.route("/api/submit-attendance", methods=["POST"], endpoint="api_submit_attendance")
    @json_api
    def api_submit_attendance():
        data = _body()
        record = service.submit_attendance(
            session_id=data.get("sessionId", ""),
            student_id=data.get("studentId", ""),
            student_name=data.get("studentName", ""),
            roll_number=data.get("rollNumber", ""),
        )
        return jsonify({"success": True, "record": record_to_json(record)})

    @app.route("/api/verify-otp", methods=["POST"], endpoint="api_verify_otp")
    @json_api
    def api_verify_otp():
        data = _body()
        record = service.verify_otp(
            session_id=data.get("sessionId", ""),
            student_id=data.get("studentId", ""),
            code=str(data.get("code") or ""),
        )
        return jsonify({"success": True, "record": record_to_json(record)})

    @app.route("/api/list-records/<session_id>", methods=["GET"], endpoint="api_list_records")
    @json_api
    def api_list_records(session_id: str):
        records = service.list_records(session_id)
        return jsonify({"success": True, "records": [record_to_json(r) for r in records]})

    @app.route("/api/sessions/<session_id>", methods=["GET"], endpoint="api_get_session")
    @json_api
    def api_get_session(session_id: str):
        summary = service.get_session_summary(session_id)
        return jsonify(
            {
                "success": True,
                "session": session_to_json(summary.session),
                "summary": summary_to_json(summary),
            }
        )

    @app.route("/api/teachers/<teacher_id>/sessions", methods=["GET"], endpoint="api_teacher_sessions")
    @json_api
    def api_teacher_sessions(teacher_id: str):
        sessions = service.list_teacher_sessions(teacher_id)
        return jsonify({"success": True, "sessions": [session_to_json(s) for s in sessions]})

    def _export_csv(rows: list[dict], filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    def _export_xlsx(rows: list[dict], filename: str):
        df = pd.DataFrame(rows, columns=EXPORT_FIELDS)
        df.columns = [EXPORT_HEADERS[c] for c in EXPORT_FIELDS]

        out = io.BytesIO()
        with pd.ExcelWriter(out, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Attendance")
        out.seek(0)
        return send_file(out, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name=filename)

    @app.route("/api/export/<session_id>", methods=["GET"], endpoint="api_export")
    @app.route("/api/session/<session_id>/attendance/download", methods=["GET"], endpoint="api_attendance_download")
    @json_api
    def api_export(session_id: str):
        export_format = (request.args.get("format") or "xlsx").lower()
        if export_format not in {"xlsx", "csv"}:
            raise ValidationError("format must be xlsx or csv")

        session = service.get_session(session_id)
        rows = [_spreadsheet_safe(row) for row in service.build_export_rows(session.session_id)]
        filename = secure_filename(
            f"attendance_{session.course}_{session.section}_{session.created_at.strftime('%Y%m%d')}.{export_format}"
        )
        if export_format == "csv":
            return _export_csv(rows, filename)
        return _export_xlsx(rows, filename)

    @app.route("/api/sessions/<session_id>/qr.png", methods=["GET"], endpoint="api_session_qr")
    @json_api
    def api_session_qr(session_id: str):
        session = service.get_session(session_id)

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=2,
        )
        qr.add_data(session.qr_token)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

from __future__ import annotations

from pathlib import Path

from src.class_attendance.class_attendance.database.bootstrap import iter_sql_statements

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_splitter_ignores_semicolons_inside_quotes():
    sql = "INSERT INTO t VALUES ('a;b'); SELECT \"x;y\"; SELECT 1"

    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'SELECT "x;y"',
        "SELECT 1",
    ]


def test_schema_declares_both_tables_and_unique_scan_key():
    sql = SCHEMA.read_text(encoding="utf-8")
    statements = list(iter_sql_statements(sql))

    creates = [s for s in statements if s.upper().startswith("CREATE TABLE")]
    assert len(creates) == 2
    assert "uq_records_session_student (session_id, student_id)" in sql

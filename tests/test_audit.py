"""Tests for the audit log writers."""

from datetime import datetime

import pytest

from csvstage import create_service
from csvstage.audit import ErrorLog, ErrorRecord, SuccessLog, SuccessRecord
from csvstage.errors import AuditWriteError


class TestErrorLog:
    def test_write_creates_table_and_appends(self, db_service):
        log = ErrorLog(db_service, "import_errors")
        log.write(ErrorRecord("a.csv", "Row Structure", "CSV Parsing Error", "bad row"))
        log.write(ErrorRecord("b.csv", "Process", "ProcessError", "boom"))

        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM import_errors ORDER BY id")
        assert [r["file_name"] for r in rows] == ["a.csv", "b.csv"]
        assert rows[0]["column_name"] == "Row Structure"
        assert rows[0]["error_type"] == "CSV Parsing Error"
        assert rows[1]["reason"] == "boom"
        assert rows[0]["logged_at"] is not None

    def test_ensure_table_is_idempotent(self, db_service):
        log = ErrorLog(db_service, "import_errors")
        log.ensure_table()
        ErrorLog(db_service, "import_errors").ensure_table()
        with db_service.transaction():
            assert db_service.table_columns("import_errors") == [
                "id",
                "file_name",
                "column_name",
                "error_type",
                "reason",
                "logged_at",
            ]

    def test_existing_schema_is_not_altered(self, db_service):
        db_service.execute_ddl("CREATE TABLE import_errors (id INTEGER PRIMARY KEY, note TEXT)")
        log = ErrorLog(db_service, "import_errors")
        with pytest.raises(AuditWriteError):
            log.write(ErrorRecord("a.csv", "Process", "ProcessError", "boom"))
        with db_service.transaction():
            assert db_service.table_columns("import_errors") == ["id", "note"]

    def test_write_opens_service(self, tmp_path):
        service = create_service(f"sqlite:///{tmp_path / 'audit.db'}")
        try:
            ErrorLog(service, "import_errors").write(
                ErrorRecord("a.csv", "Process", "ProcessError", "boom")
            )
            assert service.is_connected
            with service.transaction():
                assert service.count_rows("import_errors") == 1
        finally:
            service.close()


class TestSuccessLog:
    def test_render(self):
        record = SuccessRecord(
            message="Successfully transferred data from a.csv",
            row_count=12000,
            column_count=3,
            elapsed_seconds=2.0,
            timestamp=datetime(2024, 1, 1),
        )
        assert record.throughput == 6000
        assert record.render() == (
            "Successfully transferred data from a.csv - Rows: 12,000, Columns: 3, "
            "Time: 2.00 s, Rate: 6,000 rows/sec"
        )

    def test_zero_elapsed_has_zero_throughput(self):
        assert SuccessRecord("m", 10, 1, 0.0).throughput == 0.0

    def test_write(self, db_service):
        log = SuccessLog(db_service, "import_success")
        log.write(SuccessRecord("done", 5, 2, 1.0))
        with db_service.transaction():
            rows = db_service.execute("SELECT message FROM import_success")
        assert rows == [{"message": "done - Rows: 5, Columns: 2, Time: 1.00 s, Rate: 5 rows/sec"}]

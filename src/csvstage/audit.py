"""Append-only audit tables for import errors and successes."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from csvstage.errors import AuditWriteError
from csvstage.service import DatabaseService

logger = logging.getLogger(__name__)

ERROR_LOG_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    {identity},
    file_name     TEXT,
    column_name   TEXT,
    error_type    VARCHAR(100),
    reason        TEXT,
    logged_at     TIMESTAMP   DEFAULT CURRENT_TIMESTAMP
);
"""

SUCCESS_LOG_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    {identity},
    message       TEXT,
    logged_at     TIMESTAMP   DEFAULT CURRENT_TIMESTAMP
);
"""

ERROR_LOG_COLUMNS = ["file_name", "column_name", "error_type", "reason", "logged_at"]
SUCCESS_LOG_COLUMNS = ["message", "logged_at"]


@dataclass(frozen=True)
class ErrorRecord:
    file_name: str
    column_name: str
    error_type: str
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SuccessRecord:
    message: str
    row_count: int
    column_count: int
    elapsed_seconds: float
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def throughput(self) -> float:
        """Rows per second; 0 when no measurable time elapsed."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.row_count / self.elapsed_seconds

    def render(self) -> str:
        return (
            f"{self.message} - Rows: {self.row_count:,}, Columns: {self.column_count}, "
            f"Time: {self.elapsed_seconds:.2f} s, Rate: {self.throughput:,.0f} rows/sec"
        )


class ErrorSink(Protocol):
    def write(self, record: ErrorRecord) -> None: ...


class _AuditTable:
    """One append-only log table, created on first use."""

    ddl: str
    columns: list[str]

    def __init__(self, service: DatabaseService, table: str):
        self._service = service
        self.table = table
        self._ensured = False

    def ensure_table(self) -> None:
        """Create the table if it doesn't exist. Existing tables are left untouched."""
        if self._ensured:
            return
        self._open()
        self._service.execute_ddl(
            self.ddl.format(table=self.table, identity=self._service.IDENTITY_COLUMN)
        )
        self._ensured = True

    def _open(self) -> None:
        if not self._service.is_connected:
            self._service.connect()

    def _insert(self, values: tuple) -> None:
        self._open()
        self.ensure_table()
        cols = ", ".join(self.columns)
        placeholders = ", ".join(self._service.PLACEHOLDER for _ in self.columns)
        sql = f"INSERT INTO {self.table} ({cols}) VALUES ({placeholders})"
        try:
            with self._service.transaction():
                self._service.execute(sql, values)
        except Exception as e:
            raise AuditWriteError(f"Could not write to audit table {self.table}: {e}") from e


class ErrorLog(_AuditTable):
    """Writer for the error audit table: (id, file_name, column_name, error_type, reason, logged_at)."""

    ddl = ERROR_LOG_DDL
    columns = ERROR_LOG_COLUMNS

    def write(self, record: ErrorRecord) -> None:
        self._insert(
            (
                record.file_name,
                record.column_name,
                record.error_type,
                record.reason,
                record.timestamp.isoformat(sep=" "),
            )
        )
        logger.debug("Logged %s for %s: %s", record.error_type, record.file_name, record.reason)


class SuccessLog(_AuditTable):
    """Writer for the success audit table: (id, message, logged_at)."""

    ddl = SUCCESS_LOG_DDL
    columns = SUCCESS_LOG_COLUMNS

    def write(self, record: SuccessRecord) -> None:
        message = record.render()
        self._insert((message, record.timestamp.isoformat(sep=" ")))
        logger.info(message)

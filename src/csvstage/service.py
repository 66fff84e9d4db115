"""Abstract database interfaces used by the import pipeline."""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Iterator

from csvstage.types import BulkLoadOptions, Params


def quote_identifier(name: str) -> str:
    """Quote a column name for use in SQL (works for SQLite and PostgreSQL)."""
    return '"' + name.replace('"', '""') + '"'


class TransactionalSession(ABC):
    """Connection handling, transactions and plain statement execution."""

    @abstractmethod
    def connect(self) -> None:
        """Initialize the connection pool."""

    @abstractmethod
    def close(self) -> None:
        """Close all connections and release resources."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True between connect() and close()."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Context manager: acquires a connection, commits on success, rolls back on error."""

    @abstractmethod
    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        """Execute a single SQL statement and return rows as dicts."""

    @abstractmethod
    def execute_scalar(self, sql: str, params: Params | None = None) -> Any:
        """Execute a query and return the first column of the first row (or None)."""

    @abstractmethod
    def stream(self, sql: str, chunk_size: int) -> Iterator[list[tuple]]:
        """Run a query and yield its rows as tuples, chunk_size at a time."""

    @abstractmethod
    def execute_ddl(self, sql: str) -> None:
        """Execute DDL statements (CREATE TABLE, DROP TABLE, etc.)."""


class BulkLoader(ABC):
    """Bulk insertion of many rows into one table."""

    @abstractmethod
    def bulk_load(
        self,
        table: str,
        columns: list[str],
        rows: Iterable[tuple],
        options: BulkLoadOptions,
    ) -> None:
        """Insert rows into table within the current transaction."""


class DatabaseService(TransactionalSession, BulkLoader):
    """Database-agnostic interface for all DB operations.

    Design principles:
    - Stateless: no mutable state beyond the connection pool
    - Thread-safe: each transaction() acquires its own connection
    - DB-agnostic: callers program against this ABC, never a concrete backend
    """

    # Auto-incrementing primary key column used by the audit tables.
    IDENTITY_COLUMN: str
    # Bind-parameter marker of the driver's paramstyle.
    PLACEHOLDER: str

    @abstractmethod
    def table_columns(self, table: str) -> list[str]:
        """Column names of table in ordinal order (empty if the table is absent)."""

    def count_rows(self, table: str) -> int:
        return int(self.execute_scalar(f"SELECT COUNT(*) FROM {table}"))

    @abstractmethod
    def truncate(self, table: str) -> None:
        """Remove every row of table inside the current transaction."""

    def recreate_text_table(self, table: str, columns: list[str]) -> None:
        """Drop table if present and create it with one TEXT column per name."""
        column_defs = ", ".join(f"{quote_identifier(c)} TEXT" for c in columns)
        self.execute_ddl(f"DROP TABLE IF EXISTS {table}; CREATE TABLE {table} ({column_defs})")

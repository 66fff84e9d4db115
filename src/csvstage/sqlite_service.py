"""SQLite implementation of DatabaseService."""

import sqlite3
import threading
from contextlib import contextmanager
from itertools import islice
from queue import Empty, Queue
from typing import Any, Iterable, Iterator

from csvstage.service import DatabaseService, quote_identifier
from csvstage.types import BulkLoadOptions, Params


class SQLiteDatabaseService(DatabaseService):
    """SQLite backend using stdlib sqlite3.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit.
    """

    IDENTITY_COLUMN = "id INTEGER PRIMARY KEY AUTOINCREMENT"
    PLACEHOLDER = "?"

    def __init__(self, db_path: str, pool_size: int = 4):
        self._db_path = db_path
        self._pool_size = pool_size
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._local = threading.local()
        self._connected = False

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._pool.put(conn)
        self._connected = True

    def close(self) -> None:
        while not self._pool.empty():
            try:
                conn = self._pool.get_nowait()
                conn.close()
            except Empty:
                break
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _acquire(self) -> sqlite3.Connection:
        return self._pool.get(timeout=30)

    def _release(self, conn: sqlite3.Connection) -> None:
        self._pool.put(conn)

    def _get_conn(self) -> sqlite3.Connection:
        """Get the connection bound to the current transaction."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            return conn
        raise RuntimeError(
            "No active transaction. Wrap calls in a `with service.transaction():` block."
        )

    @contextmanager
    def transaction(self) -> Iterator[None]:
        conn = self._acquire()
        self._local.conn = conn
        try:
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            self._release(conn)

    def execute(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.execute(sql, params or ())
        if cursor.description is None:
            return []
        columns = [desc[0] for desc in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_scalar(self, sql: str, params: Params | None = None) -> Any:
        row = self._get_conn().execute(sql, params or ()).fetchone()
        return None if row is None else row[0]

    def stream(self, sql: str, chunk_size: int) -> Iterator[list[tuple]]:
        cursor = self._get_conn().execute(sql)
        try:
            while chunk := cursor.fetchmany(chunk_size):
                yield [tuple(row) for row in chunk]
        finally:
            cursor.close()

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            conn.executescript(sql)
            conn.commit()
        finally:
            self._release(conn)

    def bulk_load(
        self,
        table: str,
        columns: list[str],
        rows: Iterable[tuple],
        options: BulkLoadOptions,
    ) -> None:
        conn = self._get_conn()
        if options.timeout is not None:
            conn.execute(f"PRAGMA busy_timeout = {int(options.timeout * 1000)}")
        cols = ", ".join(quote_identifier(c) for c in columns)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({cols}) VALUES ({placeholders})"
        it = iter(rows)
        while chunk := list(islice(it, options.batch_size)):
            conn.executemany(sql, chunk)

    def table_columns(self, table: str) -> list[str]:
        rows = self._get_conn().execute(f"PRAGMA table_info({table})").fetchall()
        return [row["name"] for row in rows]

    def truncate(self, table: str) -> None:
        # SQLite has no TRUNCATE; an unqualified DELETE is its equivalent.
        self._get_conn().execute(f"DELETE FROM {table}")

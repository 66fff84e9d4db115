"""PostgreSQL implementation of DatabaseService."""

import threading
import uuid
from contextlib import contextmanager
from queue import Empty, Queue
from typing import Any, Iterable, Iterator

import psycopg2
import psycopg2.extras

from csvstage.service import DatabaseService, quote_identifier
from csvstage.types import BulkLoadOptions, Params


class PostgresDatabaseService(DatabaseService):
    """PostgreSQL backend using psycopg2.

    Thread-safe via a connection pool (Queue). Each transaction() call
    acquires a dedicated connection and returns it on exit.
    """

    IDENTITY_COLUMN = "id BIGSERIAL PRIMARY KEY"
    PLACEHOLDER = "%s"

    def __init__(self, dsn: str, pool_size: int = 4):
        self._dsn = dsn
        self._pool_size = pool_size
        self._pool: Queue = Queue(maxsize=pool_size)
        self._local = threading.local()
        self._connected = False

    def connect(self) -> None:
        for _ in range(self._pool_size):
            conn = psycopg2.connect(self._dsn)
            conn.autocommit = False
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

    def _acquire(self):
        return self._pool.get(timeout=30)

    def _release(self, conn) -> None:
        self._pool.put(conn)

    def _get_conn(self):
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
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql, params or ())
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]

    def execute_scalar(self, sql: str, params: Params | None = None) -> Any:
        with self._get_conn().cursor() as cur:
            cur.execute(sql, params or ())
            row = cur.fetchone()
        return None if row is None else row[0]

    def stream(self, sql: str, chunk_size: int) -> Iterator[list[tuple]]:
        # Named cursors are server-side: rows are fetched chunk_size at a time.
        conn = self._get_conn()
        with conn.cursor(name=f"csvstage_{uuid.uuid4().hex}") as cur:
            cur.itersize = chunk_size
            cur.execute(sql)
            while chunk := cur.fetchmany(chunk_size):
                yield chunk

    def execute_ddl(self, sql: str) -> None:
        conn = self._acquire()
        try:
            with conn.cursor() as cur:
                for statement in sql.split(";"):
                    statement = statement.strip()
                    if statement:
                        cur.execute(statement)
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
        timeout_ms = 0 if options.timeout is None else int(options.timeout * 1000)
        cols = ", ".join(quote_identifier(c) for c in columns)
        with conn.cursor() as cur:
            # statement_timeout = 0 disables the limit for this transaction.
            cur.execute(f"SET LOCAL statement_timeout = {timeout_ms}")
            psycopg2.extras.execute_values(
                cur,
                f"INSERT INTO {table} ({cols}) VALUES %s",
                rows,
                page_size=options.batch_size,
            )

    def table_columns(self, table: str) -> list[str]:
        schema, _, name = table.rpartition(".")
        rows = self.execute(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_name = %s AND table_schema = COALESCE(%s, current_schema()) "
            "ORDER BY ordinal_position",
            (name, schema or None),
        )
        return [row["column_name"] for row in rows]

    def truncate(self, table: str) -> None:
        with self._get_conn().cursor() as cur:
            cur.execute(f"TRUNCATE TABLE {table}")

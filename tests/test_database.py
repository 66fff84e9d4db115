"""Tests for DatabaseService (SQLite backend)."""

import threading

import pytest

from csvstage import BulkLoadOptions, create_service


class TestDatabaseService:
    def test_execute_ddl_and_insert(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        with db_service.transaction():
            db_service.execute("INSERT INTO t (id, name) VALUES (?, ?)", (1, "alice"))
            rows = db_service.execute("SELECT * FROM t")
        assert rows == [{"id": 1, "name": "alice"}]

    def test_execute_scalar(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            assert db_service.execute_scalar("SELECT COUNT(*) FROM t") == 0
            assert db_service.execute_scalar("SELECT id FROM t") is None

    def test_bulk_load_in_chunks(self, db_service):
        db_service.execute_ddl('CREATE TABLE t ("id" TEXT, "val" TEXT)')
        rows = [(str(i), f"v{i}") for i in range(7)]
        with db_service.transaction():
            db_service.bulk_load("t", ["id", "val"], iter(rows), BulkLoadOptions(batch_size=3))
            assert db_service.count_rows("t") == 7

    def test_stream_yields_chunks(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.bulk_load("t", ["id"], [(i,) for i in range(5)], BulkLoadOptions())
            chunks = list(db_service.stream("SELECT id FROM t ORDER BY id", 2))
        assert [len(c) for c in chunks] == [2, 2, 1]
        assert chunks[0] == [(0,), (1,)]

    def test_table_columns_in_ordinal_order(self, db_service):
        db_service.recreate_text_table("t", ["b", "a", "Column With Space"])
        with db_service.transaction():
            assert db_service.table_columns("t") == ["b", "a", "Column With Space"]
            assert db_service.table_columns("missing") == []

    def test_recreate_text_table_drops_rows(self, db_service):
        db_service.recreate_text_table("t", ["a"])
        with db_service.transaction():
            db_service.bulk_load("t", ["a"], [("x",)], BulkLoadOptions())
        db_service.recreate_text_table("t", ["a", "b"])
        with db_service.transaction():
            assert db_service.count_rows("t") == 0
            assert db_service.table_columns("t") == ["a", "b"]

    def test_truncate_rolls_back(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with db_service.transaction():
            db_service.bulk_load("t", ["id"], [(1,), (2,)], BulkLoadOptions())

        with pytest.raises(ValueError):
            with db_service.transaction():
                db_service.truncate("t")
                assert db_service.count_rows("t") == 0
                raise ValueError("simulated failure")

        with db_service.transaction():
            assert db_service.count_rows("t") == 2

    def test_transaction_rollback_on_error(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val TEXT)")
        with pytest.raises(ValueError):
            with db_service.transaction():
                db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (1, "x"))
                raise ValueError("simulated failure")

        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t")
        assert rows == []

    def test_requires_transaction(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY)")
        with pytest.raises(RuntimeError, match="No active transaction"):
            db_service.execute("SELECT 1")

    def test_concurrent_transactions(self, db_service):
        db_service.execute_ddl("CREATE TABLE t (id INTEGER PRIMARY KEY, val INTEGER)")
        errors = []

        def worker(n):
            try:
                with db_service.transaction():
                    db_service.execute("INSERT INTO t (id, val) VALUES (?, ?)", (n, n * 10))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        with db_service.transaction():
            rows = db_service.execute("SELECT * FROM t ORDER BY id")
        assert len(rows) == 4

    def test_connect_and_close_track_state(self, tmp_path):
        service = create_service(f"sqlite:///{tmp_path / 'x.db'}")
        assert not service.is_connected
        service.connect()
        assert service.is_connected
        service.close()
        assert not service.is_connected


class TestCreateService:
    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported database URL scheme"):
            create_service("mysql://localhost/db")

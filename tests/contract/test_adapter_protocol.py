"""Contract tests for adapter protocol compliance."""

from __future__ import annotations

import pytest

from row_record.adapters.mysql import MysqlAdapter
from row_record.adapters.postgresql import PostgresqlAdapter
from row_record.adapters.protocol import SyncAdapter, unquote_default
from row_record.adapters.sqlite import SqliteAdapter
from row_record.core.connection import ConnectionConfig


@pytest.mark.parametrize("adapter_class", [SqliteAdapter, PostgresqlAdapter, MysqlAdapter])
def test_implements_sync_protocol(adapter_class: type) -> None:
    assert isinstance(adapter_class(), SyncAdapter)


class TestSqliteAdapterProtocol:
    def test_paramstyle(self) -> None:
        adapter = SqliteAdapter()
        assert adapter.paramstyle == "named"
        assert adapter.supports_returning is False

    def test_lifecycle(self, sqlite_config: ConnectionConfig) -> None:
        adapter = SqliteAdapter()
        pool = adapter.create_pool(sqlite_config)
        assert len(pool) == 1

        conn = adapter.acquire_connection(pool)
        assert conn is not None
        assert len(pool) == 0

        cursor = adapter.execute(conn, "SELECT 1 AS val")
        row = cursor.fetchone()
        assert row["val"] == 1

        adapter.release_connection(conn, pool)
        assert len(pool) == 1

        adapter.close_pool(pool)
        assert len(pool) == 0

    def test_empty_pool_raises(self, sqlite_config: ConnectionConfig) -> None:
        adapter = SqliteAdapter()
        pool = adapter.create_pool(sqlite_config)
        adapter.acquire_connection(pool)
        with pytest.raises(RuntimeError):
            adapter.acquire_connection(pool)

    def test_schema_introspection(self, sqlite_config: ConnectionConfig) -> None:
        adapter = SqliteAdapter()
        pool = adapter.create_pool(sqlite_config)
        conn = adapter.acquire_connection(pool)
        adapter.execute(
            conn,
            "CREATE TABLE firms (id INTEGER PRIMARY KEY, name VARCHAR(50) DEFAULT '37signals')",
        )
        assert adapter.column_definitions(conn, "firms") == [
            ("id", None, "INTEGER"),
            ("name", "37signals", "VARCHAR(50)"),
        ]
        assert "CREATE TABLE firms" in adapter.structure_dump(conn)

        cursor = adapter.execute(conn, "INSERT INTO firms (name) VALUES (:name)", {"name": "Apex"})
        assert adapter.last_insert_id(cursor) == 1
        adapter.rollback(conn)
        adapter.close_pool(pool)


class TestPyformatAdapters:
    @pytest.mark.parametrize("adapter_class", [PostgresqlAdapter, MysqlAdapter])
    def test_paramstyle(self, adapter_class: type) -> None:
        assert adapter_class().paramstyle == "pyformat"

    def test_returning_support(self) -> None:
        assert PostgresqlAdapter().supports_returning is True
        assert MysqlAdapter().supports_returning is False


class TestUnquoteDefault:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, None),
            ("NULL", None),
            ("'37signals'", "37signals"),
            ("'it''s'", "it's"),
            ("'active'::character varying", "active"),
            ("nextval('companies_id_seq'::regclass)", None),
            ("0", "0"),
            (3, 3),
        ],
    )
    def test_unquote(self, raw: object, expected: object) -> None:
        assert unquote_default(raw) == expected

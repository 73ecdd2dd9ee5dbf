"""SQLite adapter using stdlib sqlite3."""

from __future__ import annotations

import sqlite3
from typing import Any

from row_record.adapters.protocol import ColumnDefinition, unquote_default
from row_record.core.connection import ConnectionConfig


class SqliteAdapter:
    """Synchronous SQLite adapter using stdlib sqlite3."""

    @property
    def paramstyle(self) -> str:
        return "named"

    @property
    def supports_returning(self) -> bool:
        return False

    def create_pool(self, config: ConnectionConfig) -> list[sqlite3.Connection]:
        """Create a 'pool' (list of connections) for SQLite."""
        pool: list[sqlite3.Connection] = []
        for _ in range(config.pool_size):
            conn = sqlite3.connect(config.database, **config.extra)
            conn.row_factory = sqlite3.Row
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[sqlite3.Connection]) -> sqlite3.Connection:
        """Acquire a connection from the pool."""
        if not pool:
            raise RuntimeError("No connections available in pool")
        return pool.pop()

    def release_connection(
        self, connection: sqlite3.Connection, pool: list[sqlite3.Connection]
    ) -> None:
        """Release a connection back to the pool."""
        pool.append(connection)

    def close_pool(self, pool: list[sqlite3.Connection]) -> None:
        """Close all connections in the pool."""
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: sqlite3.Connection,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> sqlite3.Cursor:
        """Execute SQL and return a cursor."""
        return connection.execute(sql, params or {})

    def last_insert_id(self, cursor: sqlite3.Cursor) -> Any:
        return cursor.lastrowid

    def column_definitions(
        self, connection: sqlite3.Connection, table_name: str
    ) -> list[ColumnDefinition]:
        """Read column metadata with PRAGMA table_info."""
        cursor = connection.execute(f"PRAGMA table_info('{table_name}')")
        # cid, name, type, notnull, dflt_value, pk
        return [(row[1], unquote_default(row[4]), row[2] or "") for row in cursor.fetchall()]

    def structure_dump(self, connection: sqlite3.Connection) -> str:
        cursor = connection.execute(
            "SELECT sql FROM sqlite_master WHERE sql IS NOT NULL "
            "AND name NOT LIKE 'sqlite_%' ORDER BY type DESC, name"
        )
        return "".join(f"{row[0]};\n\n" for row in cursor.fetchall())

    def commit(self, connection: sqlite3.Connection) -> None:
        connection.commit()

    def rollback(self, connection: sqlite3.Connection) -> None:
        connection.rollback()

"""MySQL adapter using mysql-connector-python."""

from __future__ import annotations

from typing import Any

from row_record.adapters.protocol import ColumnDefinition
from row_record.core.connection import ConnectionConfig


class MysqlAdapter:
    """Synchronous MySQL adapter using mysql-connector-python."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    @property
    def supports_returning(self) -> bool:
        return False

    def create_pool(self, config: ConnectionConfig) -> list[Any]:
        """Create a pool (list of connections) for MySQL."""
        import mysql.connector

        pool: list[Any] = []
        for _ in range(config.pool_size):
            conn = mysql.connector.connect(
                host=config.host,
                port=config.port,
                user=config.user,
                password=config.password,
                database=config.database,
                **config.extra,
            )
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[Any]) -> Any:
        """Acquire a connection from the pool."""
        if not pool:
            raise RuntimeError("No connections available in pool")
        return pool.pop()

    def release_connection(self, connection: Any, pool: list[Any]) -> None:
        """Release a connection back to the pool."""
        pool.append(connection)

    def close_pool(self, pool: list[Any]) -> None:
        """Close all connections in the pool."""
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor with dictionary results."""
        cursor = connection.cursor(dictionary=True, buffered=True)
        if params:
            cursor.execute(sql, params)
        else:
            # Without parameters the connector skips pyformat unescaping
            cursor.execute(sql.replace("%%", "%"))
        return cursor

    def last_insert_id(self, cursor: Any) -> Any:
        return cursor.lastrowid

    def column_definitions(self, connection: Any, table_name: str) -> list[ColumnDefinition]:
        cursor = self.execute(connection, f"SHOW FIELDS FROM `{table_name}`")
        return [(row["Field"], row["Default"], row["Type"]) for row in cursor.fetchall()]

    def structure_dump(self, connection: Any) -> str:
        dump: list[str] = []
        for table in self.execute(connection, "SHOW TABLES").fetchall():
            name = next(iter(table.values()))
            row = self.execute(connection, f"SHOW CREATE TABLE `{name}`").fetchone()
            dump.append(f"{row['Create Table']};\n\n")
        return "".join(dump)

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()

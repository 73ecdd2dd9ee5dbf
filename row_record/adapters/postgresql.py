"""PostgreSQL adapter using psycopg (v3+)."""

from __future__ import annotations

from typing import Any

from row_record.adapters.protocol import ColumnDefinition, unquote_default
from row_record.core.connection import ConnectionConfig

_COLUMNS_SQL = """
SELECT column_name, column_default, data_type, character_maximum_length
FROM information_schema.columns
WHERE table_name = %(table_name)s AND table_schema = current_schema()
ORDER BY ordinal_position
"""

_TABLES_SQL = """
SELECT table_name FROM information_schema.tables
WHERE table_schema = current_schema() AND table_type = 'BASE TABLE'
ORDER BY table_name
"""


def _build_conninfo(config: ConnectionConfig) -> str:
    """Build a libpq connection string from config fields."""
    parts: list[str] = []
    if config.host is not None:
        parts.append(f"host={config.host}")
    if config.port is not None:
        parts.append(f"port={config.port}")
    if config.user is not None:
        parts.append(f"user={config.user}")
    if config.password is not None:
        parts.append(f"password={config.password}")
    parts.append(f"dbname={config.database}")
    return " ".join(parts)


def _sql_type(row: dict[str, Any]) -> str:
    if row["character_maximum_length"] is not None:
        return f"{row['data_type']}({row['character_maximum_length']})"
    return str(row["data_type"])


class PostgresqlAdapter:
    """Synchronous PostgreSQL adapter using psycopg (v3+)."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    @property
    def supports_returning(self) -> bool:
        return True

    def create_pool(self, config: ConnectionConfig) -> list[Any]:
        import psycopg
        import psycopg.rows

        conninfo = _build_conninfo(config)
        pool: list[Any] = []
        for _ in range(config.pool_size):
            conn = psycopg.connect(conninfo, row_factory=psycopg.rows.dict_row, **config.extra)
            pool.append(conn)
        return pool

    def acquire_connection(self, pool: list[Any]) -> Any:
        if not pool:
            raise RuntimeError("No connections available in pool")
        return pool.pop()

    def release_connection(self, connection: Any, pool: list[Any]) -> None:
        pool.append(connection)

    def close_pool(self, pool: list[Any]) -> None:
        for conn in pool:
            conn.close()
        pool.clear()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return connection.execute(sql, params)

    def last_insert_id(self, cursor: Any) -> Any:
        row = cursor.fetchone()
        if row is None:
            return None
        return next(iter(row.values()))

    def column_definitions(self, connection: Any, table_name: str) -> list[ColumnDefinition]:
        cursor = connection.execute(_COLUMNS_SQL, {"table_name": table_name})
        return [
            (row["column_name"], unquote_default(row["column_default"]), _sql_type(row))
            for row in cursor.fetchall()
        ]

    def structure_dump(self, connection: Any) -> str:
        """Rebuild CREATE TABLE statements from the information schema."""
        dump: list[str] = []
        for table in connection.execute(_TABLES_SQL).fetchall():
            name = table["table_name"]
            columns = connection.execute(_COLUMNS_SQL, {"table_name": name}).fetchall()
            lines = []
            for row in columns:
                line = f"  {row['column_name']} {_sql_type(row)}"
                if row["column_default"] is not None:
                    line += f" DEFAULT {row['column_default']}"
                lines.append(line)
            dump.append(f"CREATE TABLE {name} (\n" + ",\n".join(lines) + "\n);\n\n")
        return "".join(dump)

    def commit(self, connection: Any) -> None:
        connection.commit()

    def rollback(self, connection: Any) -> None:
        connection.rollback()

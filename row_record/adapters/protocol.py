"""Database adapter protocol.

Every adapter module MUST implement this protocol so the engine stays
polymorphic over storage backends.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from row_record.core.connection import ConnectionConfig

# (column name, raw default value, declared SQL type)
ColumnDefinition = tuple[str, Any, str]


@runtime_checkable
class SyncAdapter(Protocol):
    """Synchronous database adapter protocol."""

    @property
    def paramstyle(self) -> str:
        """Parameter binding style: 'named' (:name) or 'pyformat' (%(name)s)."""
        ...

    @property
    def supports_returning(self) -> bool:
        """Whether INSERT ... RETURNING is needed to read generated keys."""
        ...

    def create_pool(self, config: ConnectionConfig) -> Any:
        """Create a connection pool."""
        ...

    def acquire_connection(self, pool: Any) -> Any:
        """Acquire a connection from the pool."""
        ...

    def release_connection(self, connection: Any, pool: Any) -> None:
        """Release a connection back to the pool."""
        ...

    def close_pool(self, pool: Any) -> None:
        """Close the pool and release all connections."""
        ...

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute SQL and return a cursor-like object."""
        ...

    def last_insert_id(self, cursor: Any) -> Any:
        """Return the key generated by the INSERT that produced *cursor*."""
        ...

    def column_definitions(self, connection: Any, table_name: str) -> list[ColumnDefinition]:
        """Describe the columns of *table_name*."""
        ...

    def structure_dump(self, connection: Any) -> str:
        """Return the schema as DDL text."""
        ...

    def commit(self, connection: Any) -> None:
        """Commit the open transaction on *connection*."""
        ...

    def rollback(self, connection: Any) -> None:
        """Roll back the open transaction on *connection*."""
        ...


def unquote_default(raw: Any) -> Any:
    """Turn a default expression reported by the catalog into a plain value.

    ``NULL`` and server-side expressions (sequences, function calls) become
    None; quoted literals lose their quotes and any ``::type`` suffix.
    """
    if raw is None or not isinstance(raw, str):
        return raw
    value = raw.strip()
    if value.endswith(")"):
        return None
    if "::" in value:
        value = value.split("::", 1)[0]
    if value.upper() == "NULL":
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1].replace(value[0] * 2, value[0])
    return value

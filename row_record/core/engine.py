"""Statement execution engine.

The Engine is the storage contract the mapping layer talks to: it binds
parameters, executes through the adapter, converts rows to dicts, pins a
connection while a transaction is open and wraps every statement with
timing, logging and error translation.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from row_record.core.column import Column
from row_record.core.connection import ConnectionConfig, ConnectionManager
from row_record.core.exceptions import RowRecordError, StatementInvalid, TransactionStateError
from row_record.core.logging import get_logger
from row_record.core.params import normalize_params, resolve_sql
from row_record.core.registry import SQLRegistry
from row_record.core.transaction import TransactionManager

T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


def _rows_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor results to list of dicts.

    Handles both tuple-like rows and dict-like rows from different adapters.
    """
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    rows = cursor.fetchall()
    if not rows:
        return []

    # Check if rows are already dict-like (e.g., psycopg dict_row, MySQL dict cursor)
    first_row = rows[0]
    if isinstance(first_row, dict):
        return [dict(row) for row in rows]

    return [dict(zip(columns, row, strict=True)) for row in rows]


class Engine:
    """Synchronous statement engine over one connection manager.

    Args:
        connection_manager: Pool owner for the configured driver.
        registry: Optional SQLRegistry; statements given as a registry key
            (no whitespace) are looked up there.
        log_statements: Log every statement at debug level.
    """

    def __init__(
        self,
        connection_manager: ConnectionManager,
        registry: SQLRegistry | None = None,
        *,
        log_statements: bool = True,
    ) -> None:
        self._connection_manager = connection_manager
        self._registry = registry
        self._paramstyle = connection_manager.adapter.paramstyle
        self._log_statements = log_statements
        self._runtime = 0.0
        self._transaction_connection: Any = None
        self._rollback_only = False
        self._after_commit: list[Callable[[], None]] = []
        self._after_rollback: list[Callable[[], None]] = []
        self._logger = get_logger(__name__, driver=connection_manager.config.driver)

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        registry: SQLRegistry | None = None,
        *,
        log_statements: bool = True,
    ) -> Engine:
        """Create an Engine from a ConnectionConfig and optional SQLRegistry."""
        connection_manager = ConnectionManager(config)
        return cls(connection_manager, registry, log_statements=log_statements)

    @property
    def adapter(self) -> Any:
        return self._connection_manager.adapter

    @property
    def registry(self) -> SQLRegistry | None:
        return self._registry

    @property
    def config(self) -> ConnectionConfig:
        return self._connection_manager.config

    @property
    def in_transaction(self) -> bool:
        return self._transaction_connection is not None

    @property
    def rollback_only(self) -> bool:
        """True once a nested scope of the open transaction has failed."""
        return self._rollback_only

    # --- statement execution ---

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        if self._transaction_connection is not None:
            yield self._transaction_connection
        else:
            with self._connection_manager.get_connection() as conn:
                yield conn

    def log(self, sql: str, name: str | None, action: Callable[[], T]) -> T:
        """Run *action*, timing it and translating driver errors."""
        started = time.perf_counter()
        try:
            result = action()
        except RowRecordError:
            raise
        except Exception as e:
            self._logger.warning("sql.failed", name=name or "SQL", error=str(e), sql=_squeeze(sql))
            raise StatementInvalid(str(e), sql) from e
        elapsed = time.perf_counter() - started
        self._runtime += elapsed
        if self._log_statements:
            self._logger.debug(
                "sql.execute", name=name or "SQL", runtime=round(elapsed, 6), sql=_squeeze(sql)
            )
        return result

    def _prepare(self, sql: str) -> str:
        return normalize_params(resolve_sql(sql, self._registry), self._paramstyle)

    def _run(
        self,
        sql: str,
        params: dict[str, Any] | None,
        name: str | None,
        handle: Callable[[Any], T],
        *,
        write: bool = False,
    ) -> T:
        statement = self._prepare(sql)
        adapter = self.adapter
        with self._connection() as conn:

            def action() -> T:
                cursor = adapter.execute(conn, statement, params or {})
                return handle(cursor)

            result = self.log(statement, name, action)
            if write and not self.in_transaction:
                adapter.commit(conn)
        return result

    def select_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch all matching rows as dicts."""
        return self._run(sql, params, name, _rows_to_dicts)

    def select_one(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> dict[str, Any] | None:
        """Fetch the first matching row, or None."""
        rows = self.select_all(sql, params, name)
        return rows[0] if rows else None

    def select_value(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> Any:
        """Fetch the first column of the first row, or None."""
        row = self.select_one(sql, params, name)
        if row is None:
            return None
        return next(iter(row.values()))

    def insert(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
        primary_key: str | None = None,
    ) -> Any:
        """Execute an INSERT and return the generated key."""
        adapter = self.adapter
        if primary_key is not None and adapter.supports_returning:
            sql = f"{sql} RETURNING {primary_key}"
        return self._run(sql, params, name, adapter.last_insert_id, write=True)

    def update(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> int:
        """Execute an UPDATE and return the affected row count."""
        return self._run(sql, params, name, _rowcount, write=True)

    def delete(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> int:
        """Execute a DELETE and return the affected row count."""
        return self._run(sql, params, name, _rowcount, write=True)

    def execute(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> int:
        """Execute any write statement (DDL included)."""
        return self._run(sql, params, name, _rowcount, write=True)

    # --- schema ---

    def columns(self, table_name: str, name: str | None = None) -> list[Column]:
        """Describe the columns of *table_name*."""
        adapter = self.adapter
        with self._connection() as conn:
            definitions = self.log(
                f"columns({table_name})",
                name,
                lambda: adapter.column_definitions(conn, table_name),
            )
        return [Column(col_name, default, sql_type) for col_name, default, sql_type in definitions]

    def structure_dump(self) -> str:
        """Return the schema of the connected database as DDL text."""
        adapter = self.adapter
        with self._connection() as conn:
            return self.log("structure_dump", None, lambda: adapter.structure_dump(conn))

    # --- transactions ---

    def begin_db_transaction(self) -> None:
        """Pin a connection for the statements that follow."""
        if self._transaction_connection is not None:
            raise TransactionStateError("active", "begin")
        self._transaction_connection = self._connection_manager.acquire()
        self._logger.debug("transaction.begin")

    def commit_db_transaction(self) -> None:
        conn = self._release_transaction_connection("commit")
        callbacks, self._after_commit = self._after_commit, []
        self._after_rollback = []
        try:
            self.log("COMMIT", None, lambda: self.adapter.commit(conn))
        finally:
            self._connection_manager.release(conn)
        self._logger.debug("transaction.commit")
        for callback in callbacks:
            callback()

    def rollback_db_transaction(self) -> None:
        conn = self._release_transaction_connection("rollback")
        callbacks, self._after_rollback = self._after_rollback, []
        self._after_commit = []
        try:
            self.log("ROLLBACK", None, lambda: self.adapter.rollback(conn))
        finally:
            self._connection_manager.release(conn)
            for callback in callbacks:
                callback()
        self._logger.debug("transaction.rollback")

    def _release_transaction_connection(self, action: str) -> Any:
        conn = self._transaction_connection
        if conn is None:
            raise TransactionStateError("idle", action)
        self._transaction_connection = None
        self._rollback_only = False
        return conn

    def mark_rollback_only(self) -> None:
        """Doom the open transaction: the outermost scope will roll it back."""
        if self.in_transaction:
            self._rollback_only = True

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run *callback* once the outermost transaction commits; now if none is open."""
        if self.in_transaction:
            self._after_commit.append(callback)
        else:
            callback()

    def after_rollback(self, callback: Callable[[], None]) -> None:
        """Run *callback* if the open transaction is rolled back."""
        if self.in_transaction:
            self._after_rollback.append(callback)

    def transaction(self) -> TransactionManager:
        """Create a transaction context manager; nested scopes join the outer one."""
        return TransactionManager(self)

    # --- housekeeping ---

    def reset_runtime(self) -> float:
        """Return the accumulated statement time and reset it to zero."""
        runtime, self._runtime = self._runtime, 0.0
        return runtime

    def close(self) -> None:
        """Close the pool; a later statement reopens it."""
        self._connection_manager.close_pool()


def _rowcount(cursor: Any) -> int:
    return int(cursor.rowcount)


def _squeeze(sql: str) -> str:
    return _WHITESPACE.sub(" ", sql).strip()

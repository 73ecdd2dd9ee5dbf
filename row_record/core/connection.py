"""Connection configuration and management.

ConnectionConfig is a Pydantic model for type-safe connection config.
ConnectionManager uses the SyncAdapter protocol for pool-based
connection lifecycle.
"""

from __future__ import annotations

import importlib
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel

from row_record.core.enums import DatabaseBackend
from row_record.core.exceptions import (
    AdapterError,
    AdapterNotFound,
    AdapterNotSpecified,
    ConnectionFailed,
    PoolError,
)


class ConnectionConfig(BaseModel):
    """Configuration for database connections."""

    driver: str | None = None
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str = ":memory:"
    pool_size: int = 1
    extra: dict[str, Any] = {}


# Adapter module mapping: driver name → (module_path, class_name)
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    DatabaseBackend.SQLITE.value: ("row_record.adapters.sqlite", "SqliteAdapter"),
    "sqlite3": ("row_record.adapters.sqlite", "SqliteAdapter"),
    DatabaseBackend.POSTGRESQL.value: ("row_record.adapters.postgresql", "PostgresqlAdapter"),
    DatabaseBackend.MYSQL.value: ("row_record.adapters.mysql", "MysqlAdapter"),
}


def _load_adapter(driver: str | None) -> Any:
    """Load an adapter by driver name."""
    if not driver:
        raise AdapterNotSpecified("Connection config does not specify a driver")
    driver_lower = driver.lower()
    if driver_lower not in _ADAPTER_MAP:
        raise AdapterNotFound(driver)

    module_path, cls_name = _ADAPTER_MAP[driver_lower]

    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(f"Failed to load adapter for '{driver}': {e}") from e


def coerce_config(config: ConnectionConfig | dict[str, Any] | None) -> ConnectionConfig:
    """Accept a ConnectionConfig or a plain mapping with string or alias keys."""
    if config is None:
        raise AdapterNotSpecified("No connection config given")
    if isinstance(config, ConnectionConfig):
        return config
    data = {str(key): value for key, value in config.items()}
    if "adapter" in data and "driver" not in data:
        data["driver"] = data.pop("adapter")
    return ConnectionConfig.model_validate(data)


class ConnectionManager:
    """Synchronous connection manager using the SyncAdapter protocol."""

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self._adapter = _load_adapter(config.driver)
        self._pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        if self._pool is None:
            try:
                self._pool = self._adapter.create_pool(self.config)
            except AdapterError:
                raise
            except Exception as e:
                raise ConnectionFailed(str(e)) from e
        return self._pool

    def acquire(self) -> Any:
        """Take a connection out of the pool without a context manager."""
        if self._pool is None:
            self.initialize_pool()
        try:
            return self._adapter.acquire_connection(self._pool)
        except RuntimeError as e:
            raise PoolError(str(e)) from e

    def release(self, connection: Any) -> None:
        """Return a connection obtained with acquire()."""
        self._adapter.release_connection(connection, self._pool)

    @contextmanager
    def get_connection(self):  # type: ignore[no-untyped-def]
        """Get a connection from the pool as a context manager."""
        connection = self.acquire()
        try:
            yield connection
        finally:
            self.release(connection)

    def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._pool = None

"""RowRecord - table-per-class record mapping over a SQL-first engine."""

from __future__ import annotations

from row_record.core.column import Column
from row_record.core.config import Settings, get_settings
from row_record.core.connection import ConnectionConfig, ConnectionManager
from row_record.core.engine import Engine
from row_record.core.enums import ColumnType, DatabaseBackend, RecordState
from row_record.core.exceptions import (
    AdapterError,
    AdapterNotFound,
    AdapterNotSpecified,
    AssociationTypeMismatch,
    CallbackDefinitionError,
    ConfigurationError,
    ConnectionFailed,
    ConnectionNotEstablished,
    DuplicateQueryError,
    FrozenRecordError,
    FrozenValueError,
    PoolError,
    QueryNotFoundError,
    RecordNotFound,
    RecordNotSaved,
    RegistryError,
    RowRecordError,
    StatementInvalid,
    TransactionError,
    TransactionRolledBack,
    TransactionStateError,
    UnknownOptionError,
    UnknownRecordClass,
)
from row_record.core.logging import configure_logging, get_logger, setup_logging
from row_record.core.registry import SQLRegistry
from row_record.core.transaction import TransactionManager
from row_record.mapping import (
    BelongsTo,
    ComposedOf,
    Errors,
    HasAndBelongsToMany,
    HasMany,
    HasOne,
    Record,
)

__all__ = [
    # Connection
    "ConnectionConfig",
    "ConnectionManager",
    # Engine
    "Engine",
    "Column",
    # Registry
    "SQLRegistry",
    # Transaction
    "TransactionManager",
    # Config & logging
    "Settings",
    "get_settings",
    "setup_logging",
    "configure_logging",
    "get_logger",
    # Mapping
    "Record",
    "Errors",
    "ComposedOf",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "HasAndBelongsToMany",
    # Enums
    "DatabaseBackend",
    "ColumnType",
    "RecordState",
    # Exceptions
    "RowRecordError",
    "ConfigurationError",
    "UnknownOptionError",
    "CallbackDefinitionError",
    "AdapterNotSpecified",
    "AdapterNotFound",
    "ConnectionNotEstablished",
    "AdapterError",
    "ConnectionFailed",
    "StatementInvalid",
    "PoolError",
    "RecordNotFound",
    "RecordNotSaved",
    "AssociationTypeMismatch",
    "FrozenRecordError",
    "FrozenValueError",
    "TransactionError",
    "TransactionStateError",
    "TransactionRolledBack",
    "RegistryError",
    "QueryNotFoundError",
    "DuplicateQueryError",
    "UnknownRecordClass",
]

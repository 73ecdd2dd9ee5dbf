"""Enumerations shared by the connection and mapping layers."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class ColumnType(Enum):
    """Coarse column types used for value coercion."""

    INTEGER = "integer"
    FLOAT = "float"
    DATETIME = "datetime"
    DATE = "date"
    TEXT = "text"
    STRING = "string"
    BOOLEAN = "boolean"


class RecordState(Enum):
    """Persistence state of a record instance."""

    NEW = "new"
    PERSISTED = "persisted"
    DESTROYED = "destroyed"

"""RowRecord exception hierarchy.

All exceptions are RowRecord-specific. Raw driver exceptions are never
exposed to callers; they are chained as ``__cause__`` of an AdapterError.
"""

from __future__ import annotations


class RowRecordError(Exception):
    """Base exception for all RowRecord errors."""


# --- Configuration ---


class ConfigurationError(RowRecordError):
    """Raised for invalid declarations, detected when the class is defined."""


class UnknownOptionError(ConfigurationError):
    """Raised when a declaration receives an option outside its allow-list."""

    def __init__(self, declaration: str, unknown: list[str]) -> None:
        self.declaration = declaration
        self.unknown = unknown
        super().__init__(f"Unknown options for {declaration}: {unknown}")


class CallbackDefinitionError(ConfigurationError):
    """Raised when a queued callback is not a usable registration."""

    def __init__(self, event: str, registration: object) -> None:
        self.event = event
        self.registration = registration
        super().__init__(
            f"Callback for '{event}' must be a method name, a callable taking the "
            f"record, or an object implementing '{event}'; got {registration!r}"
        )


class AdapterNotSpecified(ConfigurationError):
    """Raised when a connection config carries no driver."""


class AdapterNotFound(ConfigurationError):
    """Raised when no adapter is registered for the configured driver."""

    def __init__(self, driver: str) -> None:
        self.driver = driver
        super().__init__(f"Unsupported database driver: {driver}")


class ConnectionNotEstablished(ConfigurationError):
    """Raised when a connection is requested before establish_connection."""


# --- Adapter ---


class AdapterError(RowRecordError):
    """Base for adapter errors."""


class ConnectionFailed(AdapterError):
    """Raised when the driver cannot open a connection."""


class StatementInvalid(AdapterError):
    """Raised when the driver rejects a statement.

    The message carries the driver message followed by the offending SQL.
    """

    def __init__(self, detail: str, sql: str) -> None:
        self.sql = sql
        super().__init__(f"{detail}: {sql}")


class PoolError(AdapterError):
    """Raised on connection pool failures."""


# --- Records ---


class RecordNotFound(RowRecordError):
    """Raised when a lookup by identity yields no row."""


class RecordNotSaved(RowRecordError):
    """Raised when an operation requires a persisted record."""


class AssociationTypeMismatch(RowRecordError):
    """Raised when a record of the wrong class is given to an association."""

    def __init__(self, association: str, expected: type, got: object) -> None:
        self.association = association
        super().__init__(
            f"{association} expected {expected.__name__}, got {type(got).__name__}"
        )


class FrozenRecordError(RowRecordError):
    """Raised when writing to a destroyed record."""


class FrozenValueError(TypeError):
    """Raised when mutating a value object after it was assigned."""


# --- Transaction ---


class TransactionError(RowRecordError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


class TransactionRolledBack(TransactionError):
    """Raised when the outermost scope exits cleanly after a nested scope failed."""

    def __init__(self) -> None:
        super().__init__("Transaction rolled back because a nested scope failed")


# --- Registry ---


class RegistryError(RowRecordError):
    """Base for SQL and record registry errors."""


class QueryNotFoundError(RegistryError):
    """Raised when a named query cannot be found in the registry."""

    def __init__(self, query_name: str) -> None:
        self.query_name = query_name
        super().__init__(f"Query not found: '{query_name}'")


class DuplicateQueryError(RegistryError):
    """Raised when two SQL files resolve to the same namespace key."""

    def __init__(self, query_name: str, path_a: str, path_b: str) -> None:
        self.query_name = query_name
        super().__init__(f"Duplicate query name '{query_name}': {path_a} and {path_b}")


class UnknownRecordClass(RegistryError):
    """Raised when an association names a record class that was never defined."""

    def __init__(self, class_name: str) -> None:
        self.class_name = class_name
        super().__init__(f"Unknown record class: '{class_name}'")

"""Transaction management.

TransactionManager is a context manager that commits on success and rolls
back on exception. Scopes nest: an inner scope joins the outermost one, so
a failure anywhere inside a cascade undoes the whole cascade. A nested scope
that exits with an exception dooms the transaction; if the caller swallows
the exception, the outermost scope rolls back and raises
TransactionRolledBack instead of committing.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from row_record.core.exceptions import TransactionRolledBack, TransactionStateError

if TYPE_CHECKING:
    from row_record.core.engine import Engine


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionManager:
    """Synchronous transaction context manager bound to an Engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._state = _TxState.IDLE
        self._joined = False

    @property
    def state(self) -> str:
        return self._state.value

    @property
    def joined(self) -> bool:
        """True when this scope runs inside an enclosing transaction."""
        return self._joined

    def __enter__(self) -> TransactionManager:
        if self._state != _TxState.IDLE:
            raise TransactionStateError(self._state.value, "begin")
        if self._engine.in_transaction:
            self._joined = True
        else:
            self._engine.begin_db_transaction()
        self._state = _TxState.ACTIVE
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._state != _TxState.ACTIVE:
            return
        if self._joined:
            # The enclosing scope decides, even if the caller swallows the exception
            if exc_type is not None:
                self._engine.mark_rollback_only()
                self._state = _TxState.ROLLED_BACK
            else:
                self._state = _TxState.COMMITTED
            return
        if exc_type is not None:
            self._engine.rollback_db_transaction()
            self._state = _TxState.ROLLED_BACK
        else:
            self._finish()

    def commit(self) -> None:
        """Explicitly commit the transaction.

        Raises:
            TransactionRolledBack: If a nested scope failed; the work is rolled back.
        """
        self._check_active("commit")
        if self._joined:
            self._state = _TxState.COMMITTED
        else:
            self._finish()

    def _finish(self) -> None:
        if self._engine.rollback_only:
            self._engine.rollback_db_transaction()
            self._state = _TxState.ROLLED_BACK
            raise TransactionRolledBack()
        self._engine.commit_db_transaction()
        self._state = _TxState.COMMITTED

    def rollback(self) -> None:
        """Explicitly rollback the transaction."""
        self._check_active("rollback")
        if self._joined:
            # No savepoints: only the outermost scope can undo work
            raise TransactionStateError("joined", "rollback")
        self._engine.rollback_db_transaction()
        self._state = _TxState.ROLLED_BACK

    def _check_active(self, action: str) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, action)

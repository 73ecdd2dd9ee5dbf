"""Capability protocols.

The engine composes record behavior through these small interfaces
instead of rewriting methods at load time: persistence drives validation
and callbacks through them, and associations only rely on Persistable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from row_record.mapping.callbacks import CallbackChain
    from row_record.mapping.errors import Errors


@runtime_checkable
class Validatable(Protocol):
    """Something that can check itself and report per-attribute errors."""

    @property
    def errors(self) -> Errors:
        ...

    def valid(self) -> bool:
        """Run the validation phase and return whether errors is empty."""
        ...


@runtime_checkable
class Persistable(Protocol):
    """Something with identity that can be written to and removed from storage."""

    @property
    def id(self) -> Any:
        ...

    @property
    def new_record(self) -> bool:
        ...

    def save(self) -> bool:
        """Insert or update; False when validation failed."""
        ...

    def destroy(self) -> None:
        """Delete the row and freeze the instance."""
        ...


@runtime_checkable
class HasCallbacks(Protocol):
    """Something that fires lifecycle events."""

    __callback_chain__: CallbackChain

    def fire(self, event: str) -> None:
        """Run queued callbacks, the override method, then observers."""
        ...

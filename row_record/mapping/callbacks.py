"""Lifecycle callback engine.

Callbacks are declared in the class body through ``__callbacks__``::

    class Topic(Record):
        __callbacks__ = {
            "before_save": ["normalize_title", AuditTrail(), lambda topic: ...],
        }

Each entry becomes one of three variants: a method name on the record, a
delegate object implementing a method named after the event, or a callable
taking the record. When the class is created its chain is resolved once:
the parent's registrations come first, then the class's own, and the result
is frozen.

A record may additionally define a method named after the event; it runs
after the queued registrations, and observers are notified last.
``after_find`` and ``after_initialize`` only ever use that method, since
they run for every materialized row.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from row_record.core.exceptions import CallbackDefinitionError

if TYPE_CHECKING:
    from row_record.mapping.protocol import HasCallbacks

CALLBACKS = (
    "after_find",
    "after_initialize",
    "before_validation",
    "before_validation_on_create",
    "before_validation_on_update",
    "after_validation",
    "after_validation_on_create",
    "after_validation_on_update",
    "before_save",
    "before_create",
    "before_update",
    "after_create",
    "after_update",
    "after_save",
    "before_destroy",
    "after_destroy",
)

# Events that never consult the queue
DIRECT_ONLY = frozenset({"after_find", "after_initialize"})

QUEUED_CALLBACKS = tuple(event for event in CALLBACKS if event not in DIRECT_ONLY)

Observer = Callable[[str, Any], None]


@dataclass(frozen=True)
class MethodCallback:
    """Calls a method of the record by name."""

    name: str

    def __call__(self, event: str, record: Any) -> None:
        getattr(record, self.name)()


@dataclass(frozen=True)
class ClosureCallback:
    """Calls a function with the record."""

    function: Callable[[Any], Any]

    def __call__(self, event: str, record: Any) -> None:
        self.function(record)


@dataclass(frozen=True)
class DelegateCallback:
    """Calls ``delegate.<event>(record)``."""

    delegate: Any

    def __call__(self, event: str, record: Any) -> None:
        getattr(self.delegate, event)(record)


Callback = Union[MethodCallback, ClosureCallback, DelegateCallback]


def coerce_callback(event: str, registration: Any) -> Callback:
    """Turn a declared registration into a callback variant.

    Raises:
        CallbackDefinitionError: If *registration* is none of the variants.
    """
    if isinstance(registration, (MethodCallback, ClosureCallback, DelegateCallback)):
        return registration
    if isinstance(registration, str):
        if not registration.isidentifier():
            raise CallbackDefinitionError(event, registration)
        return MethodCallback(registration)
    if callable(getattr(registration, event, None)):
        return DelegateCallback(registration)
    if callable(registration):
        return ClosureCallback(registration)
    raise CallbackDefinitionError(event, registration)


@dataclass(frozen=True)
class CallbackChain:
    """Immutable per-class snapshot of queued callbacks."""

    queues: Mapping[str, tuple[Callback, ...]]

    @classmethod
    def empty(cls) -> CallbackChain:
        return cls({event: () for event in QUEUED_CALLBACKS})

    def extend(self, declarations: Mapping[str, Iterable[Any] | Any]) -> CallbackChain:
        """Return a new chain with *declarations* appended after the existing ones.

        Raises:
            CallbackDefinitionError: For an unknown or direct-only event name,
                or an unusable registration.
        """
        queues = dict(self.queues)
        for event, registrations in declarations.items():
            if event not in queues:
                raise CallbackDefinitionError(event, registrations)
            if isinstance(registrations, (str, bytes)) or not isinstance(registrations, Iterable):
                registrations = [registrations]
            queues[event] = queues[event] + tuple(
                coerce_callback(event, registration) for registration in registrations
            )
        return CallbackChain(queues)

    def for_event(self, event: str) -> tuple[Callback, ...]:
        return self.queues.get(event, ())

    def __len__(self) -> int:
        return sum(len(queue) for queue in self.queues.values())


def run_callbacks(record: HasCallbacks, event: str) -> None:
    """Run the queued registrations for *event* in declaration order."""
    for callback in type(record).__callback_chain__.for_event(event):
        callback(event, record)


def notify_observers(record: Any, event: str) -> None:
    """Notify observers registered on the record's class and its ancestors."""
    for klass in type(record).__mro__:
        for observer in klass.__dict__.get("_observers", ()):
            observer(event, record)


def fire(record: HasCallbacks, event: str) -> None:
    """Queued callbacks, then the override method, then observers."""
    if event not in DIRECT_ONLY:
        run_callbacks(record, event)
    override = getattr(record, event, None)
    if callable(override):
        override()
    notify_observers(record, event)

"""Value-object composition.

``ComposedOf`` maps one or more columns onto an immutable value type::

    class Customer(Record):
        balance = ComposedOf(class_name=Money, mapping=("balance", "amount"))
        address = ComposedOf(mapping=[("address_street", "street"), ("address_city", "city")])

Reading builds the value object from the mapped columns in mapping order,
passed positionally to the constructor, and caches it on the instance.
Assigning freezes the object, caches it, and writes each mapped attribute
back into its column.
"""

from __future__ import annotations

import dataclasses
import sys
from collections.abc import Sequence
from typing import Any

from row_record.core.exceptions import ConfigurationError, FrozenValueError, UnknownOptionError
from row_record.core.inflection import camelize
from row_record.core.registry import records

VALID_OPTIONS = frozenset({"class_name", "mapping"})

_IMMUTABLE_TYPES = (str, bytes, int, float, complex, bool, tuple, frozenset, type(None))

_frozen_classes: dict[type, type] = {}


def _refuse(self: Any, *args: Any) -> None:
    raise FrozenValueError(f"can't modify frozen {type(self).__mro__[1].__name__}")


def _is_immutable(value: Any) -> bool:
    if isinstance(value, _IMMUTABLE_TYPES):
        return True
    if getattr(type(value), "__frozen_value__", False):
        return True
    params = getattr(type(value), "__dataclass_params__", None)
    if params is not None and params.frozen:
        return True
    config = getattr(type(value), "model_config", None)
    return isinstance(config, dict) and bool(config.get("frozen"))


def _frozen_class(cls: type) -> type:
    """Build (once) a subclass of *cls* that rejects attribute writes."""
    frozen = _frozen_classes.get(cls)
    if frozen is not None:
        return frozen

    namespace: dict[str, Any] = {
        "__slots__": (),
        "__frozen_value__": True,
        "__setattr__": _refuse,
        "__delattr__": _refuse,
        "__module__": cls.__module__,
        "__qualname__": cls.__qualname__,
    }
    if dataclasses.is_dataclass(cls) and cls.__dict__.get("__eq__") is not None:
        # Dataclass __eq__ requires identical classes; compare field values instead
        fields = [f.name for f in dataclasses.fields(cls) if f.compare]

        def __eq__(self: Any, other: Any) -> bool:
            if not isinstance(other, cls):
                return NotImplemented
            return all(getattr(self, name) == getattr(other, name) for name in fields)

        namespace["__eq__"] = __eq__
        namespace["__hash__"] = cls.__hash__

    frozen = type(cls.__name__, (cls,), namespace)
    _frozen_classes[cls] = frozen
    return frozen


def freeze(value: Any) -> Any:
    """Make *value* reject in-place modification and return it.

    Already immutable values are returned untouched; other objects have
    their class swapped for a frozen subclass, so isinstance checks and
    value equality keep working.
    """
    if _is_immutable(value):
        return value
    try:
        value.__class__ = _frozen_class(type(value))
    except TypeError as e:
        raise FrozenValueError(f"can't freeze {type(value).__name__}: {e}") from e
    return value


def is_frozen(value: Any) -> bool:
    return _is_immutable(value)


def _normalize_mapping(mapping: Any) -> tuple[tuple[str, str], ...]:
    if (
        isinstance(mapping, Sequence)
        and len(mapping) == 2
        and all(isinstance(item, str) for item in mapping)
    ):
        return ((mapping[0], mapping[1]),)
    pairs: list[tuple[str, str]] = []
    for pair in mapping:
        if isinstance(pair, str) or len(pair) != 2:
            raise ConfigurationError(
                f"ComposedOf mapping must hold (column, parameter) pairs, got {pair!r}"
            )
        pairs.append((pair[0], pair[1]))
    return tuple(pairs)


class ComposedOf:
    """Declares a value object composed from record columns."""

    def __init__(self, **options: Any) -> None:
        unknown = sorted(set(options) - VALID_OPTIONS)
        if unknown:
            raise UnknownOptionError("ComposedOf", unknown)
        self._class_name = options.get("class_name")
        self._raw_mapping = options.get("mapping")
        self.name = ""
        self._owner_module = ""
        self.mapping: tuple[tuple[str, str], ...] = (
            () if self._raw_mapping is None else _normalize_mapping(self._raw_mapping)
        )

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self._owner_module = owner.__module__
        if self._class_name is None:
            self._class_name = camelize(name)
        if self._raw_mapping is None:
            self.mapping = ((name, name),)

    @property
    def value_class(self) -> type:
        """The value type; a class name is looked up in the declaring module."""
        target = self._class_name
        if not isinstance(target, str):
            return target  # type: ignore[return-value]
        module = sys.modules.get(self._owner_module)
        found = getattr(module, target, None)
        if isinstance(found, type):
            return found
        return records.get(target)

    def read(self, record: Any, force_reload: bool = False) -> Any:
        cache = record._composition_cache
        if force_reload or cache.get(self.name) is None:
            values = [record.read_attribute(column) for column, _ in self.mapping]
            cache[self.name] = self.value_class(*values)
        return cache[self.name]

    def write(self, record: Any, part: Any) -> None:
        if part is None:
            record._composition_cache.pop(self.name, None)
            for column, _ in self.mapping:
                record.write_attribute(column, None)
            return
        part = freeze(part)
        record._composition_cache[self.name] = part
        for column, parameter in self.mapping:
            record.write_attribute(column, getattr(part, parameter))

    def __get__(self, record: Any, owner: type | None = None) -> Any:
        if record is None:
            return self
        return self.read(record)

    def __set__(self, record: Any, part: Any) -> None:
        self.write(record, part)

    def __repr__(self) -> str:
        return f"ComposedOf({self.name!r}, mapping={self.mapping!r})"

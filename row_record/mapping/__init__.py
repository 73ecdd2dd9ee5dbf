"""Mapping layer - records, callbacks, compositions and associations."""

from __future__ import annotations

from row_record.mapping.aggregation import ComposedOf, freeze, is_frozen
from row_record.mapping.associations import (
    BelongsTo,
    HasAndBelongsToMany,
    HasMany,
    HasOne,
)
from row_record.mapping.callbacks import (
    CALLBACKS,
    CallbackChain,
    ClosureCallback,
    DelegateCallback,
    MethodCallback,
)
from row_record.mapping.errors import Errors
from row_record.mapping.record import Record

__all__ = [
    "Record",
    "Errors",
    "ComposedOf",
    "freeze",
    "is_frozen",
    "BelongsTo",
    "HasOne",
    "HasMany",
    "HasAndBelongsToMany",
    "CALLBACKS",
    "CallbackChain",
    "MethodCallback",
    "ClosureCallback",
    "DelegateCallback",
]

"""Validation error collection attached to every record."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from row_record.core.inflection import humanize

BASE = "base"

DEFAULT_MESSAGES = {
    "empty": "can't be empty",
    "blank": "can't be blank",
    "invalid": "is invalid",
    "taken": "has already been taken",
}


class Errors:
    """Per-attribute validation messages.

    Messages on the base are stored under ``"base"`` and rendered without
    an attribute prefix in full_messages.
    """

    def __init__(self, record: Any) -> None:
        self._record = record
        self._errors: dict[str, list[str]] = {}

    def add(self, attribute: str, message: str = DEFAULT_MESSAGES["invalid"]) -> None:
        self._errors.setdefault(attribute, []).append(message)

    def add_to_base(self, message: str) -> None:
        self.add(BASE, message)

    def add_on_empty(
        self, attributes: str | Iterable[str], message: str = DEFAULT_MESSAGES["empty"]
    ) -> None:
        """Add *message* for each attribute whose value is None or empty."""
        if isinstance(attributes, str):
            attributes = [attributes]
        for attribute in attributes:
            value = self._record.read_attribute(attribute)
            if value is None or (hasattr(value, "__len__") and len(value) == 0):
                self.add(attribute, message)

    def add_on_blank(
        self, attributes: str | Iterable[str], message: str = DEFAULT_MESSAGES["blank"]
    ) -> None:
        """Like add_on_empty, but whitespace-only strings also count."""
        if isinstance(attributes, str):
            attributes = [attributes]
        for attribute in attributes:
            value = self._record.read_attribute(attribute)
            if value is None or (isinstance(value, str) and not value.strip()):
                self.add(attribute, message)

    def invalid(self, attribute: str) -> bool:
        return attribute in self._errors

    def on(self, attribute: str) -> str | list[str] | None:
        """None, the single message, or every message for *attribute*."""
        messages = self._errors.get(attribute)
        if not messages:
            return None
        return messages[0] if len(messages) == 1 else list(messages)

    def on_base(self) -> str | list[str] | None:
        return self.on(BASE)

    def full_messages(self) -> list[str]:
        messages: list[str] = []
        for attribute, attribute_messages in self._errors.items():
            for message in attribute_messages:
                if attribute == BASE:
                    messages.append(message)
                else:
                    messages.append(f"{humanize(attribute)} {message}")
        return messages

    def clear(self) -> None:
        self._errors.clear()

    def is_empty(self) -> bool:
        return not self._errors

    def count(self) -> int:
        return sum(len(messages) for messages in self._errors.values())

    def __len__(self) -> int:
        return self.count()

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for attribute, messages in self._errors.items():
            for message in messages:
                yield attribute, message

    def __repr__(self) -> str:
        return f"Errors({self._errors!r})"

"""SQL parameter handling.

Converts `:name` parameter syntax to driver-specific format, handling
string literal exclusion and PostgreSQL `::typecast` syntax, and
normalizes the condition arguments accepted by finders.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from row_record.core.registry import SQLRegistry

# Matches :name but not ::typecast and not inside words
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Matches single-quoted string literals (with escaped quotes handled)
_STRING_LITERAL_PATTERN = re.compile(r"'(?:[^'\\]|\\.)*'")

# A condition is either a bare SQL fragment or a fragment with its parameters
Conditions = Union[str, tuple[str, dict[str, Any]], None]


def normalize_params(sql: str, paramstyle: str) -> str:
    """Convert :name parameters to the target param style.

    Args:
        sql: SQL string with :name parameters.
        paramstyle: Target style - 'named' (no conversion) or 'pyformat' (%(name)s).
    """
    if paramstyle == "named":
        return sql
    return _convert_to_pyformat(sql)


@lru_cache(maxsize=256)
def _convert_to_pyformat(sql: str) -> str:
    """Convert :name params to %(name)s, preserving string literals."""
    parts: list[str] = []
    last_end = 0

    for match in _STRING_LITERAL_PATTERN.finditer(sql):
        start, end = match.span()
        if start > last_end:
            parts.append(_escape_and_convert(sql[last_end:start]))
        # Literal percent signs must be doubled for pyformat drivers
        parts.append(match.group().replace("%", "%%"))
        last_end = end

    if last_end < len(sql):
        parts.append(_escape_and_convert(sql[last_end:]))

    return "".join(parts)


def _escape_and_convert(segment: str) -> str:
    return _PARAM_PATTERN.sub(r"%(\1)s", segment.replace("%", "%%"))


def is_raw_sql(query: str) -> bool:
    """Return True if query is an inline SQL string rather than a registry key.

    Registry keys use dot-notation (e.g. ``firm.clients``) and never
    contain whitespace.  Any SQL statement will contain at least one space.
    """
    return any(c.isspace() for c in query)


def resolve_sql(query: str, registry: SQLRegistry | None) -> str:
    """Return the SQL text for *query*.

    Inline SQL is returned unchanged; anything else is looked up in the
    registry by name.
    """
    if is_raw_sql(query) or registry is None:
        return query
    return registry.get(query)


def split_conditions(conditions: Conditions) -> tuple[str | None, dict[str, Any]]:
    """Normalize *conditions* to ``(fragment, params)``."""
    if conditions is None:
        return None, {}
    if isinstance(conditions, str):
        return conditions, {}
    fragment, params = conditions
    return fragment, dict(params)


def merge_conditions(*conditions: Conditions) -> tuple[str | None, dict[str, Any]]:
    """AND together several conditions, merging their parameters."""
    fragments: list[str] = []
    params: dict[str, Any] = {}
    for condition in conditions:
        fragment, fragment_params = split_conditions(condition)
        if fragment:
            fragments.append(f"({fragment})")
            params.update(fragment_params)
    if not fragments:
        return None, params
    return " AND ".join(fragments), params

"""Column metadata and type coercion.

Coercion is lenient by contract: a malformed stored value degrades to a
best-effort fallback (zero, None or the raw string) instead of raising, so
loading a row never fails because of a single column.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any

import yaml

from row_record.core.enums import ColumnType

_LIMIT_PATTERN = re.compile(r"\((\d+)")
_INTEGER_TYPE = re.compile(r"\b(?:tiny|small|medium|big)?int(?:eger|\d+)?\b")
_INTEGER_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

YAML_HEADER = "--- "

_ZERO_DATE = "0000-00-00"
_ZERO_DATETIME = "0000-00-00 00:00:00"

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d",
)
_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y")

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}


def simplified_type(sql_type: str | None) -> ColumnType | None:
    """Map a declared SQL type onto a coarse ColumnType."""
    if not sql_type:
        return None
    lowered = sql_type.lower()
    if _INTEGER_TYPE.search(lowered):
        return ColumnType.INTEGER
    if any(name in lowered for name in ("float", "double", "real", "numeric", "decimal")):
        return ColumnType.FLOAT
    if "datetime" in lowered or "time" in lowered:
        return ColumnType.DATETIME
    if "date" in lowered:
        return ColumnType.DATE
    if any(name in lowered for name in ("clob", "blob", "text")):
        return ColumnType.TEXT
    if any(name in lowered for name in ("varchar", "string", "char")):
        return ColumnType.STRING
    if "bool" in lowered:
        return ColumnType.BOOLEAN
    return None


def _extract_limit(sql_type: str | None) -> int | None:
    if not sql_type:
        return None
    match = _LIMIT_PATTERN.search(sql_type)
    return int(match.group(1)) if match else None


def string_to_integer(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        if isinstance(value, (int, float)):
            return int(value)
        match = _INTEGER_PREFIX.match(str(value))
        return int(match.group(1)) if match else 0
    except (OverflowError, ValueError):
        # inf, nan and digit strings past the interpreter's conversion limit
        return 0


def string_to_float(value: Any) -> float:
    try:
        if isinstance(value, (int, float)):
            return float(value)
        match = _FLOAT_PREFIX.match(str(value))
        return float(match.group(1)) if match else 0.0
    except OverflowError:
        return 0.0


def string_to_datetime(value: Any) -> dt.datetime | None:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text or text.startswith(_ZERO_DATETIME) or text == _ZERO_DATE:
        return None
    for fmt in _DATETIME_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        return None


def string_to_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    if not text or text.startswith(_ZERO_DATE):
        return None
    # Only the date part of a timestamp matters here
    text = text.split(" ", 1)[0].split("T", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def object_from_yaml(value: Any) -> Any:
    """Load a YAML document if *value* carries the header, else return it untouched."""
    if not isinstance(value, str) or not value.startswith(YAML_HEADER):
        return value
    try:
        return yaml.safe_load(value)
    except yaml.YAMLError:
        return value


def string_to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


class Column:
    """Metadata for one persisted field.

    Args:
        name: Column name.
        default: Raw default as reported by the catalog.
        sql_type: Declared SQL type, e.g. ``VARCHAR(255)``.
    """

    __slots__ = ("name", "_default", "sql_type", "type", "limit")

    def __init__(self, name: str, default: Any = None, sql_type: str | None = None) -> None:
        self.name = name
        self._default = default
        self.sql_type = sql_type
        self.type = simplified_type(sql_type)
        self.limit = _extract_limit(sql_type)

    def __repr__(self) -> str:
        return f"Column({self.name!r}, {self._default!r}, {self.sql_type!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Column):
            return NotImplemented
        return (self.name, self._default, self.sql_type) == (
            other.name,
            other._default,
            other.sql_type,
        )

    def __hash__(self) -> int:
        return hash((self.name, self.sql_type))

    @property
    def default(self) -> Any:
        """The declared default, coerced like any stored value."""
        return self.type_cast(self._default)

    @property
    def klass(self) -> type | None:
        """Python type that values of this column are cast to."""
        return {
            ColumnType.INTEGER: int,
            ColumnType.FLOAT: float,
            ColumnType.DATETIME: dt.datetime,
            ColumnType.DATE: dt.date,
            ColumnType.TEXT: str,
            ColumnType.STRING: str,
            ColumnType.BOOLEAN: bool,
        }.get(self.type)  # type: ignore[arg-type]

    @property
    def human_name(self) -> str:
        return self.name.replace("_", " ").capitalize()

    def type_cast(self, value: Any) -> Any:
        """Turn a stored value into its in-memory representation. Never raises."""
        if value is None:
            return None
        if self.type is ColumnType.STRING:
            return value
        if self.type is ColumnType.TEXT:
            return object_from_yaml(value)
        if self.type is ColumnType.INTEGER:
            return string_to_integer(value)
        if self.type is ColumnType.FLOAT:
            return string_to_float(value)
        if self.type is ColumnType.DATETIME:
            return string_to_datetime(value)
        if self.type is ColumnType.DATE:
            return string_to_date(value)
        if self.type is ColumnType.BOOLEAN:
            return string_to_boolean(value)
        return value

    def to_storable(self, value: Any) -> Any:
        """Turn an in-memory value into something the driver can bind."""
        if value is None:
            return None
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, dt.datetime):
            return value.strftime("%Y-%m-%d %H:%M:%S")
        if isinstance(value, dt.date):
            return value.isoformat()
        if isinstance(value, (dict, list, tuple)) and self.type in (
            ColumnType.TEXT,
            ColumnType.STRING,
            None,
        ):
            return YAML_HEADER + yaml.safe_dump(
                list(value) if isinstance(value, tuple) else value,
                default_flow_style=True,
            ).strip()
        return value

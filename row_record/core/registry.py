"""Registries used by the mapping layer.

SQLRegistry loads and caches SQL files from a directory structure, so
association finder SQL can be kept in files and referenced by key.

Namespace convention:
    sql/firm/clients.sql         -> "firm.clients"
    sql/billing/invoice/list.sql -> "billing.invoice.list"

RecordRegistry maps record class names to classes, so associations can
name their target before it is defined.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from row_record.core.exceptions import DuplicateQueryError, QueryNotFoundError, UnknownRecordClass


class SQLRegistry:
    """Loads and caches SQL files from a directory structure.

    The registry is immutable after loading: load once at startup, then
    read-only access for the lifetime of the application.

    Args:
        root_dir: Root directory containing SQL files.

    Raises:
        DuplicateQueryError: If two files resolve to the same namespace key.
    """

    def __init__(self, root_dir: Path | str) -> None:
        self._root_dir = Path(root_dir)
        self._queries: dict[str, str] = {}
        self._query_paths: dict[str, Path] = {}
        self._load()

    def _load(self) -> None:
        """Recursively load all .sql files from root directory."""
        if not self._root_dir.exists():
            return

        for sql_file in sorted(self._root_dir.rglob("*.sql")):
            relative = sql_file.relative_to(self._root_dir)
            parts = list(relative.parts)
            parts[-1] = parts[-1].removesuffix(".sql")
            query_name = ".".join(parts)

            if query_name in self._queries:
                raise DuplicateQueryError(
                    query_name,
                    str(self._query_paths[query_name]),
                    str(sql_file),
                )

            self._queries[query_name] = sql_file.read_text(encoding="utf-8").strip()
            self._query_paths[query_name] = sql_file

    def get(self, query_name: str) -> str:
        """Look up SQL text by namespace-qualified name.

        Raises:
            QueryNotFoundError: If no query matches the given name.
        """
        try:
            return self._queries[query_name]
        except KeyError:
            raise QueryNotFoundError(query_name) from None

    def has(self, query_name: str) -> bool:
        """Check if a query name is registered."""
        return query_name in self._queries

    @property
    def query_names(self) -> list[str]:
        """List all registered query names, sorted alphabetically."""
        return sorted(self._queries.keys())

    def __len__(self) -> int:
        return len(self._queries)


class RecordRegistry:
    """Class-name lookup for record classes.

    The most recently defined class wins when two share a name, so tests
    can redefine fixtures freely.
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[Any]] = {}

    def register(self, record_class: type[Any]) -> None:
        self._classes[record_class.__name__] = record_class

    def get(self, class_name: str) -> type[Any]:
        try:
            return self._classes[class_name]
        except KeyError:
            raise UnknownRecordClass(class_name) from None

    def has(self, class_name: str) -> bool:
        return class_name in self._classes

    def resolve(self, target: type[Any] | str) -> type[Any]:
        """Accept a class or a class name and return the class."""
        if isinstance(target, str):
            return self.get(target)
        return target

    def __len__(self) -> int:
        return len(self._classes)


records = RecordRegistry()

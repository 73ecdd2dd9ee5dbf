"""Association engine.

Associations are declared as class attributes of a record::

    class Firm(Company):
        clients = HasMany(class_name="Client", order="id", dependent=True)
        account = HasOne(dependent=True)

    class Client(Company):
        firm = BelongsTo(counter_cache=True)

Options are checked against a fixed allow-list when the declaration is
evaluated, so a misspelled option fails while the class body runs.

Each declaration is a data descriptor. Per owner instance it creates one
proxy (``record.association(name)``) holding the loaded target and a cached
count. Collection proxies load on first access and keep serving the cache
until reloaded; every mutator writes through to storage and patches the
loaded cache in place.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from row_record.core.exceptions import (
    AssociationTypeMismatch,
    RecordNotFound,
    RecordNotSaved,
    UnknownOptionError,
)
from row_record.core.inflection import camelize, classify, foreign_key
from row_record.core.params import Conditions, merge_conditions
from row_record.core.registry import records

if TYPE_CHECKING:
    from row_record.mapping.record import Record


def _flatten(items: Iterable[Any]) -> list[Any]:
    """Accept records and iterables of records, in any mix."""
    flat: list[Any] = []
    for item in items:
        if isinstance(item, (list, tuple, set, frozenset, CollectionProxy)) or (
            isinstance(item, Iterator)
        ):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat


# --- declarations ---


class Association:
    """Base declaration shared by every association kind."""

    kind = "association"
    VALID_OPTIONS: frozenset[str] = frozenset()

    def __init__(self, **options: Any) -> None:
        unknown = sorted(set(options) - self.VALID_OPTIONS)
        if unknown:
            raise UnknownOptionError(type(self).__name__, unknown)
        self.options = options
        self.name = ""
        self.owner: type[Record] | None = None
        self.class_name = ""
        self.foreign_key = ""
        self.conditions: Conditions = options.get("conditions")
        self.order: str | None = options.get("order")

    def __set_name__(self, owner: type[Record], name: str) -> None:
        self.name = name
        self.owner = owner
        target = self.options.get("class_name")
        if target is None:
            self.class_name = self.default_class_name(name)
        elif isinstance(target, str):
            self.class_name = target
        else:
            self.class_name = target.__name__
            self._target_class = target
        self.foreign_key = self.options.get("foreign_key") or self.default_foreign_key()

    def default_class_name(self, name: str) -> str:
        return classify(name)

    def default_foreign_key(self) -> str:
        assert self.owner is not None
        return foreign_key(self.owner.__name__)

    @property
    def target_class(self) -> type[Record]:
        target = getattr(self, "_target_class", None)
        if target is not None:
            return target
        return records.resolve(self.class_name)

    def callbacks(self) -> dict[str, list[Any]]:
        """Callbacks this declaration adds to the owner's chain."""
        return {}

    def proxy(self, record: Record) -> Any:
        cache = record._association_cache
        proxy = cache.get(self.name)
        if proxy is None:
            proxy = self.proxy_class(record, self)
            cache[self.name] = proxy
        return proxy

    proxy_class: type[AssociationProxy]

    def check_type(self, candidate: Any) -> None:
        target_class = self.target_class
        if not isinstance(candidate, target_class):
            raise AssociationTypeMismatch(self.name, target_class, candidate)

    def __repr__(self) -> str:
        owner = self.owner.__name__ if self.owner else "?"
        return f"{type(self).__name__}({owner}.{self.name} -> {self.class_name})"


class BelongsTo(Association):
    """Many-to-one: the foreign key lives on the owner."""

    kind = "belongs_to"
    VALID_OPTIONS = frozenset({"class_name", "foreign_key", "conditions", "counter_cache"})

    def default_class_name(self, name: str) -> str:
        return camelize(name)

    def default_foreign_key(self) -> str:
        return f"{self.name}_id"

    @property
    def counter_column(self) -> str | None:
        counter = self.options.get("counter_cache")
        if not counter:
            return None
        if isinstance(counter, str):
            return counter
        assert self.owner is not None
        return f"{self.owner.table_name()}_count"

    def callbacks(self) -> dict[str, list[Any]]:
        if not self.options.get("counter_cache"):
            return {}
        return {
            "after_create": [self._increment_counter],
            "before_destroy": [self._decrement_counter],
        }

    def _increment_counter(self, record: Record) -> None:
        key = record.read_attribute(self.foreign_key)
        if key is not None:
            self.target_class.increment_counter(self.counter_column, key)  # type: ignore[arg-type]

    def _decrement_counter(self, record: Record) -> None:
        key = record.read_attribute(self.foreign_key)
        if key is not None:
            self.target_class.decrement_counter(self.counter_column, key)  # type: ignore[arg-type]

    def __get__(self, record: Record | None, owner: type | None = None) -> Any:
        if record is None:
            return self
        return self.proxy(record).target()

    def __set__(self, record: Record, value: Any) -> None:
        self.proxy(record).replace(value)


class HasOne(Association):
    """One-to-one: the foreign key lives on the target."""

    kind = "has_one"
    VALID_OPTIONS = frozenset({"class_name", "foreign_key", "conditions", "order", "dependent"})

    def default_class_name(self, name: str) -> str:
        return camelize(name)

    def callbacks(self) -> dict[str, list[Any]]:
        if not self.options.get("dependent"):
            return {}
        return {"before_destroy": [self._destroy_dependent]}

    def _destroy_dependent(self, record: Record) -> None:
        target = self.proxy(record).target()
        if target is not None:
            target.destroy()

    def __get__(self, record: Record | None, owner: type | None = None) -> Any:
        if record is None:
            return self
        return self.proxy(record).target()

    def __set__(self, record: Record, value: Any) -> None:
        self.proxy(record).replace(value)


class HasMany(Association):
    """One-to-many: a cached, ordered collection of targets."""

    kind = "has_many"
    VALID_OPTIONS = frozenset(
        {
            "class_name",
            "foreign_key",
            "conditions",
            "order",
            "dependent",
            "exclusively_dependent",
            "finder_sql",
            "counter_sql",
        }
    )

    @property
    def finder_sql(self) -> str | None:
        return self.options.get("finder_sql")

    @property
    def counter_sql(self) -> str | None:
        return self.options.get("counter_sql")

    def counter_column(self) -> str | None:
        """Counter column the target's belongs-to keeps on the owner, if any."""
        for reflection in self.target_class.__reflections__.values():
            if (
                isinstance(reflection, BelongsTo)
                and reflection.foreign_key == self.foreign_key
                and reflection.counter_column is not None
            ):
                return reflection.counter_column
        return None

    def callbacks(self) -> dict[str, list[Any]]:
        if self.options.get("dependent"):
            return {"before_destroy": [self._destroy_dependents]}
        if self.options.get("exclusively_dependent"):
            return {"before_destroy": [self._delete_dependents]}
        return {}

    def _destroy_dependents(self, record: Record) -> None:
        proxy = self.proxy(record)
        for child in list(proxy.load()):
            child.destroy()
        proxy.reset()

    def _delete_dependents(self, record: Record) -> None:
        proxy = self.proxy(record)
        self.target_class.delete_all(proxy.scope())
        proxy.reset()

    def __get__(self, record: Record | None, owner: type | None = None) -> Any:
        if record is None:
            return self
        return self.proxy(record)

    def __set__(self, record: Record, value: Iterable[Any]) -> None:
        self.proxy(record).replace(value)


class HasAndBelongsToMany(Association):
    """Many-to-many through a join table."""

    kind = "has_and_belongs_to_many"
    VALID_OPTIONS = frozenset(
        {
            "class_name",
            "join_table",
            "foreign_key",
            "association_foreign_key",
            "conditions",
            "order",
            "finder_sql",
        }
    )

    @property
    def join_table(self) -> str:
        table = self.options.get("join_table")
        if table:
            return table
        assert self.owner is not None
        return "_".join(sorted([self.owner.table_name(), self.target_class.table_name()]))

    @property
    def association_foreign_key(self) -> str:
        return self.options.get("association_foreign_key") or foreign_key(self.class_name)

    @property
    def finder_sql(self) -> str | None:
        return self.options.get("finder_sql")

    def callbacks(self) -> dict[str, list[Any]]:
        return {"before_destroy": [self._delete_join_rows]}

    def _delete_join_rows(self, record: Record) -> None:
        if record.id is None:
            return
        record.connection().delete(
            f"DELETE FROM {self.join_table} WHERE {self.foreign_key} = :owner_id",
            {"owner_id": record.id},
            f"{self.owner.__name__ if self.owner else ''} {self.name} clear",
        )
        self.proxy(record).reset()

    def __get__(self, record: Record | None, owner: type | None = None) -> Any:
        if record is None:
            return self
        return self.proxy(record)

    def __set__(self, record: Record, value: Iterable[Any]) -> None:
        self.proxy(record).replace(value)


# --- per-instance proxies ---


class AssociationProxy:
    """Association state for one owner instance."""

    def __init__(self, owner: Record, reflection: Any) -> None:
        self._owner = owner
        self._reflection = reflection

    @property
    def owner(self) -> Record:
        return self._owner

    @property
    def reflection(self) -> Any:
        return self._reflection

    def reset(self) -> None:
        raise NotImplementedError

    def _require_persisted_owner(self) -> None:
        if self._owner.new_record:
            raise RecordNotSaved(
                f"{type(self._owner).__name__} must be saved before changing {self._reflection.name}"
            )


class SingularProxy(AssociationProxy):
    """Shared behavior of belongs-to and has-one."""

    def __init__(self, owner: Record, reflection: Any) -> None:
        super().__init__(owner, reflection)
        self._target: Any = None
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def target(self, force_reload: bool = False) -> Any:
        if force_reload or not self._loaded:
            self._target = self._load_target()
            self._loaded = True
        return self._target

    def reload(self) -> Any:
        return self.target(force_reload=True)

    def reset(self) -> None:
        self._target = None
        self._loaded = False

    def exists(self, force_reload: bool = False) -> bool:
        return self.target(force_reload) is not None

    def matches(self, candidate: Any) -> bool:
        """Whether *candidate* is the associated record.

        Raises:
            AssociationTypeMismatch: If *candidate* is not of the target class.
            RecordNotSaved: If *candidate* has no identity yet.
        """
        self._reflection.check_type(candidate)
        if candidate.new_record:
            raise RecordNotSaved(f"Cannot compare {self._reflection.name} with an unsaved record")
        target = self.target()
        return target is not None and target.id == candidate.id

    def _set_target(self, target: Any) -> None:
        self._target = target
        self._loaded = True

    def _load_target(self) -> Any:
        raise NotImplementedError

    def replace(self, target: Any) -> None:
        raise NotImplementedError


class BelongsToProxy(SingularProxy):
    def _load_target(self) -> Any:
        key = self._owner.read_attribute(self._reflection.foreign_key)
        if key is None:
            return None
        target_class = self._reflection.target_class
        return target_class.find_first(
            merge_conditions(
                (f"{target_class.primary_key()} = :belongs_to_id", {"belongs_to_id": key}),
                self._reflection.conditions,
            )
        )

    def replace(self, target: Any) -> None:
        """Point the owner at *target*, writing the foreign key immediately."""
        if target is None:
            self._owner.write_attribute(self._reflection.foreign_key, None)
            self._set_target(None)
            return
        self._reflection.check_type(target)
        if target.new_record:
            raise RecordNotSaved(f"Cannot assign an unsaved record to {self._reflection.name}")
        self._owner.write_attribute(self._reflection.foreign_key, target.id)
        self._set_target(target)

    def create(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """Create a target and point the owner at it."""
        target = self._reflection.target_class.create(attributes, **kwargs)
        if not target.new_record:
            self.replace(target)
        return target


class HasOneProxy(SingularProxy):
    def scope(self) -> tuple[str | None, dict[str, Any]]:
        return merge_conditions(
            (f"{self._reflection.foreign_key} = :owner_id", {"owner_id": self._owner.id}),
            self._reflection.conditions,
        )

    def _load_target(self) -> Any:
        if self._owner.id is None:
            return None
        return self._reflection.target_class.find_first(self.scope(), self._reflection.order)

    def replace(self, target: Any) -> None:
        """Attach *target*, writing and saving its foreign key immediately."""
        self._require_persisted_owner()
        if target is not None:
            self._reflection.check_type(target)
        key = self._reflection.foreign_key
        current = self.target()
        with self._owner.transaction():
            if current is not None and current is not target and current != target:
                current.write_attribute(key, None)
                current.save()
            if target is not None:
                target.write_attribute(key, self._owner.id)
                if not target.save():
                    raise RecordNotSaved(f"{self._reflection.name} failed validation")
        self._set_target(target)

    def build(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """New target with the foreign key already set; not saved."""
        target = self._reflection.target_class(attributes, **kwargs)
        target.write_attribute(self._reflection.foreign_key, self._owner.id)
        self._set_target(target)
        return target

    def create(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        target = self.build(attributes, **kwargs)
        target.save()
        return target


class CollectionProxy(AssociationProxy):
    """List-like view over the targets of a to-many association."""

    def __init__(self, owner: Record, reflection: Any) -> None:
        super().__init__(owner, reflection)
        self._target: list[Any] | None = None
        self._count: int | None = None

    # --- loading ---

    @property
    def loaded(self) -> bool:
        return self._target is not None

    def load(self, force_reload: bool = False) -> list[Any]:
        if force_reload or self._target is None:
            self._target = [] if self._owner.id is None else self._find_target()
            self._count = None
        return self._target

    def reload(self) -> CollectionProxy:
        self.load(force_reload=True)
        return self

    def reset(self) -> None:
        self._target = None
        self._count = None

    def count(self, force_reload: bool = False) -> int:
        """Number of targets; served from the loaded collection or a cached count."""
        if force_reload:
            self.reset()
        if self._target is not None:
            return len(self._target)
        if self._count is None:
            self._count = 0 if self._owner.id is None else self._count_records()
        return self._count

    def exists(self, force_reload: bool = False) -> bool:
        return self.count(force_reload) > 0

    def _find_target(self) -> list[Any]:
        raise NotImplementedError

    def _count_records(self) -> int:
        raise NotImplementedError

    # --- cache maintenance ---

    def _cache_append(self, record: Any) -> None:
        if self._target is not None:
            if not any(existing is record or existing == record for existing in self._target):
                self._target.append(record)
        elif self._count is not None:
            self._count += 1

    def _cache_drop(self, record: Any) -> None:
        if self._target is not None:
            self._target = [
                existing
                for existing in self._target
                if existing is not record and not (record.id is not None and existing == record)
            ]
        elif self._count is not None:
            self._count = max(0, self._count - 1)

    # --- mutation ---

    def add(self, *records: Any) -> CollectionProxy:
        raise NotImplementedError

    def remove(self, *records: Any) -> CollectionProxy:
        raise NotImplementedError

    def append(self, record: Any) -> CollectionProxy:
        return self.add(record)

    def extend(self, records: Iterable[Any]) -> CollectionProxy:
        return self.add(*records)

    def __lshift__(self, record: Any) -> CollectionProxy:
        return self.add(record)

    def __iadd__(self, records: Iterable[Any]) -> CollectionProxy:
        return self.add(*records)

    def __isub__(self, records: Iterable[Any]) -> CollectionProxy:
        return self.remove(*records)

    def replace(self, records: Iterable[Any]) -> None:
        wanted = _flatten([records])
        current = list(self.load())
        stale = [r for r in current if not any(r is w or r == w for w in wanted)]
        fresh = [w for w in wanted if not any(w is r or w == r for r in current)]
        with self._owner.transaction():
            if stale:
                self.remove(*stale)
            if fresh:
                self.add(*fresh)

    # --- sequence protocol ---

    def __iter__(self) -> Iterator[Any]:
        return iter(self.load())

    def __len__(self) -> int:
        return len(self.load())

    def __getitem__(self, index: Any) -> Any:
        return self.load()[index]

    def __contains__(self, record: Any) -> bool:
        return any(existing is record or existing == record for existing in self.load())

    def __bool__(self) -> bool:
        return self.exists()

    def first(self) -> Any:
        target = self.load()
        return target[0] if target else None

    def last(self) -> Any:
        target = self.load()
        return target[-1] if target else None

    def to_list(self) -> list[Any]:
        return list(self.load())

    def __repr__(self) -> str:
        state = repr(self._target) if self._target is not None else "<not loaded>"
        return f"<{type(self).__name__} {self._reflection.name}: {state}>"


class HasManyProxy(CollectionProxy):
    def scope(self) -> tuple[str | None, dict[str, Any]]:
        return merge_conditions(
            (f"{self._reflection.foreign_key} = :owner_id", {"owner_id": self._owner.id}),
            self._reflection.conditions,
        )

    def _find_target(self) -> list[Any]:
        target_class = self._reflection.target_class
        if self._reflection.finder_sql:
            return target_class.find_by_sql(self._reflection.finder_sql, {"id": self._owner.id})
        return target_class.find_all(self.scope(), self._reflection.order)

    def _count_records(self) -> int:
        if self._reflection.counter_sql:
            return int(
                self._owner.connection().select_value(
                    self._reflection.counter_sql, {"id": self._owner.id}
                )
                or 0
            )
        if self._reflection.finder_sql:
            return len(self._find_target())
        return self._reflection.target_class.count(self.scope())

    def find(self, record_id: Any) -> Any:
        """Find a target by id within this collection.

        Raises:
            RecordNotFound: If no target with that id belongs to the owner.
        """
        target_class = self._reflection.target_class
        found = target_class.find_first(
            merge_conditions(
                self.scope(),
                (f"{target_class.primary_key()} = :target_id", {"target_id": record_id}),
            )
        )
        if found is None:
            raise RecordNotFound(
                f"Couldn't find {target_class.__name__} with id={record_id} "
                f"in {self._reflection.name}"
            )
        return found

    def build(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """New target with the foreign key set, added to a loaded collection; not saved."""
        record = self._reflection.target_class(attributes, **kwargs)
        record.write_attribute(self._reflection.foreign_key, self._owner.id)
        if self._target is not None:
            self._target.append(record)
        return record

    def create(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """Build, save and count a new target; returns it even when invalid."""
        self._require_persisted_owner()
        record = self.build(attributes, **kwargs)
        if record.save():
            if self._target is None and self._count is not None:
                self._count += 1
        elif self._target is not None:
            self._target = [existing for existing in self._target if existing is not record]
        return record

    def add(self, *records: Any) -> HasManyProxy:
        """Attach records by writing the foreign key and saving each."""
        self._require_persisted_owner()
        owner = self._owner
        key = self._reflection.foreign_key
        counter = self._reflection.counter_column()
        with owner.transaction():
            for record in _flatten(records):
                self._reflection.check_type(record)
                was_new = record.new_record
                previous = record.read_attribute(key)
                record.write_attribute(key, owner.id)
                if not record.save():
                    raise RecordNotSaved(f"{type(record).__name__} failed validation")
                if not was_new and previous == owner.id:
                    continue
                if counter and not was_new:
                    type(owner).increment_counter(counter, owner.id)
                    if previous is not None:
                        type(owner).decrement_counter(counter, previous)
                self._cache_append(record)
        return self

    def remove(self, *records: Any) -> HasManyProxy:
        """Detach records by clearing their foreign key."""
        self._require_persisted_owner()
        owner = self._owner
        key = self._reflection.foreign_key
        counter = self._reflection.counter_column()
        with owner.transaction():
            for record in _flatten(records):
                if record.read_attribute(key) != owner.id:
                    continue
                record.write_attribute(key, None)
                if not record.save():
                    raise RecordNotSaved(f"{type(record).__name__} failed validation")
                if counter:
                    type(owner).decrement_counter(counter, owner.id)
                self._cache_drop(record)
        return self

    def clear(self) -> HasManyProxy:
        return self.remove(*self.load())

    def delete_all(self) -> int:
        """Delete every target with one statement; no callbacks run."""
        self._require_persisted_owner()
        deleted = self._reflection.target_class.delete_all(self.scope())
        counter = self._reflection.counter_column()
        if counter:
            type(self._owner).update_all(
                (f"{counter} = 0", {}),
                (f"{type(self._owner).primary_key()} = :owner_id", {"owner_id": self._owner.id}),
            )
        self._target = []
        self._count = None
        return deleted

    def destroy_all(self) -> None:
        """Destroy every target, running their callbacks, in one transaction."""
        with self._owner.transaction():
            for record in list(self.load()):
                record.destroy()
        self._target = []
        self._count = None


class HasAndBelongsToManyProxy(CollectionProxy):
    def _join_sql(self, select: str) -> tuple[str, dict[str, Any]]:
        reflection = self._reflection
        target_class = reflection.target_class
        fragment, params = merge_conditions(
            (f"j.{reflection.foreign_key} = :owner_id", {"owner_id": self._owner.id}),
            reflection.conditions,
        )
        sql = (
            f"SELECT {select} FROM {target_class.table_name()} t "
            f"INNER JOIN {reflection.join_table} j "
            f"ON t.{target_class.primary_key()} = j.{reflection.association_foreign_key} "
            f"WHERE {fragment}"
        )
        return sql, params

    def _find_target(self) -> list[Any]:
        target_class = self._reflection.target_class
        if self._reflection.finder_sql:
            return target_class.find_by_sql(self._reflection.finder_sql, {"id": self._owner.id})
        sql, params = self._join_sql("t.*")
        if self._reflection.order:
            sql += f" ORDER BY {self._reflection.order}"
        return target_class.find_by_sql(sql, params)

    def _count_records(self) -> int:
        if self._reflection.finder_sql:
            return len(self._find_target())
        sql, params = self._join_sql("COUNT(*)")
        return int(self._owner.connection().select_value(sql, params) or 0)

    def find(self, record_id: Any) -> Any:
        target_class = self._reflection.target_class
        sql, params = self._join_sql("t.*")
        sql += f" AND t.{target_class.primary_key()} = :target_id"
        found = target_class.find_by_sql(sql, {**params, "target_id": record_id})
        if not found:
            raise RecordNotFound(
                f"Couldn't find {target_class.__name__} with id={record_id} "
                f"in {self._reflection.name}"
            )
        return found[0]

    def add(self, *records: Any) -> HasAndBelongsToManyProxy:
        """Insert a join row for each record, saving new records first."""
        self._require_persisted_owner()
        reflection = self._reflection
        connection = self._owner.connection()
        sql = (
            f"INSERT INTO {reflection.join_table} "
            f"({reflection.foreign_key}, {reflection.association_foreign_key}) "
            f"VALUES (:owner_id, :target_id)"
        )
        linked = (
            f"SELECT COUNT(*) FROM {reflection.join_table} "
            f"WHERE {reflection.foreign_key} = :owner_id "
            f"AND {reflection.association_foreign_key} = :target_id"
        )
        with self._owner.transaction():
            for record in _flatten(records):
                reflection.check_type(record)
                if record.new_record:
                    if not record.save():
                        raise RecordNotSaved(f"{type(record).__name__} failed validation")
                elif connection.select_value(
                    linked, {"owner_id": self._owner.id, "target_id": record.id}
                ):
                    continue
                connection.insert(
                    sql,
                    {"owner_id": self._owner.id, "target_id": record.id},
                    f"{reflection.owner.__name__} {reflection.name} add",
                )
                self._cache_append(record)
        return self

    def remove(self, *records: Any) -> HasAndBelongsToManyProxy:
        """Delete the join rows linking the owner to each record."""
        self._require_persisted_owner()
        reflection = self._reflection
        connection = self._owner.connection()
        sql = (
            f"DELETE FROM {reflection.join_table} "
            f"WHERE {reflection.foreign_key} = :owner_id "
            f"AND {reflection.association_foreign_key} = :target_id"
        )
        with self._owner.transaction():
            for record in _flatten(records):
                if record.id is None:
                    continue
                deleted = connection.delete(
                    sql,
                    {"owner_id": self._owner.id, "target_id": record.id},
                    f"{reflection.owner.__name__} {reflection.name} remove",
                )
                if self._target is not None:
                    self._cache_drop(record)
                elif self._count is not None:
                    self._count = max(0, self._count - deleted)
        return self

    def create(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """Create a target and link it; returns it even when invalid."""
        record = self._reflection.target_class(attributes, **kwargs)
        if record.save():
            self.add(record)
        return record

    def clear(self) -> HasAndBelongsToManyProxy:
        self._require_persisted_owner()
        self._reflection._delete_join_rows(self._owner)
        self._target = []
        return self


BelongsTo.proxy_class = BelongsToProxy
HasOne.proxy_class = HasOneProxy
HasMany.proxy_class = HasManyProxy
HasAndBelongsToMany.proxy_class = HasAndBelongsToManyProxy

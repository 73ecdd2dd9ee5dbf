"""Record base class: one class per table, one instance per row.

A record class maps to a table named after it (``Company`` -> ``companies``)
and reads its columns from the catalog on first use. Attributes are exposed
as plain attributes and coerced through the column types on read::

    Record.establish_connection({"driver": "sqlite", "database": "app.db"})

    class Topic(Record):
        __callbacks__ = {"before_save": ["touch"]}

        def validate(self):
            self.errors.add_on_empty("title")

    topic = Topic.create(title="Hello")
    Topic.find(topic.id).title

Subclasses of a mapped record without their own ``__table__`` share the
parent's table (single-table inheritance) and record their class name in
the ``type`` column.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, ClassVar

from row_record.core.column import Column
from row_record.core.config import get_settings
from row_record.core.connection import ConnectionConfig, coerce_config
from row_record.core.engine import Engine
from row_record.core.enums import RecordState
from row_record.core.exceptions import (
    ConfigurationError,
    ConnectionNotEstablished,
    FrozenRecordError,
    RecordNotFound,
    RecordNotSaved,
)
from row_record.core.inflection import humanize, tableize
from row_record.core.logging import get_logger
from row_record.core.params import Conditions, merge_conditions, split_conditions
from row_record.core.registry import SQLRegistry, records
from row_record.core.transaction import TransactionManager
from row_record.mapping import callbacks
from row_record.mapping.aggregation import ComposedOf
from row_record.mapping.associations import Association
from row_record.mapping.callbacks import CallbackChain, Observer
from row_record.mapping.errors import Errors

logger = get_logger(__name__)


def _mapped_parent(cls: type) -> type[Record] | None:
    """Nearest ancestor that is a concrete mapped record."""
    for base in cls.__mro__[1:]:
        if base is Record or not (isinstance(base, type) and issubclass(base, Record)):
            continue
        if not base.__dict__.get("__abstract__", False):
            return base
    return None


class Record:
    """Base class for table-backed records."""

    __abstract__: ClassVar[bool] = True
    __table__: ClassVar[str | None] = None
    __primary_key__: ClassVar[str] = "id"
    __inheritance_column__: ClassVar[str] = "type"
    __attr_protected__: ClassVar[Iterable[str]] = ()
    __attr_accessible__: ClassVar[Iterable[str] | None] = None

    __callback_chain__: ClassVar[CallbackChain] = CallbackChain.empty()
    __reflections__: ClassVar[dict[str, Association]] = {}
    __compositions__: ClassVar[dict[str, ComposedOf]] = {}

    _engine: ClassVar[Engine | None] = None
    _observers: ClassVar[list[Observer]] = []
    _sti_base: ClassVar[type[Record] | None] = None
    _columns: ClassVar[list[Column] | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        namespace = cls.__dict__
        cls._observers = []
        cls._columns = None

        if namespace.get("__abstract__", False):
            cls._sti_base = None
        elif "__table__" in namespace:
            cls._sti_base = cls
        else:
            parent = _mapped_parent(cls)
            if parent is None:
                cls.__table__ = tableize(cls.__name__)
                cls._sti_base = cls
            else:
                cls.__table__ = parent.__table__
                cls._sti_base = parent._sti_base

        reflections = dict(super(cls, cls).__reflections__)
        compositions = dict(super(cls, cls).__compositions__)
        chain = super(cls, cls).__callback_chain__
        # Walk the class body in order so association callbacks keep their
        # position relative to __callbacks__
        for attribute, value in namespace.items():
            if attribute == "__callbacks__":
                chain = chain.extend(value)
            elif isinstance(value, Association):
                reflections[attribute] = value
                chain = chain.extend(value.callbacks())
            elif isinstance(value, ComposedOf):
                compositions[attribute] = value
        cls.__reflections__ = reflections
        cls.__compositions__ = compositions
        cls.__callback_chain__ = chain

        if not namespace.get("__abstract__", False):
            records.register(cls)

    # --- connection ---

    @classmethod
    def establish_connection(
        cls,
        config: ConnectionConfig | dict[str, Any] | None = None,
        registry: SQLRegistry | None = None,
    ) -> Engine:
        """Connect this class (and subclasses without their own connection).

        Raises:
            AdapterNotSpecified: If no driver is configured.
            AdapterNotFound: If the driver is unknown.
        """
        settings = get_settings()
        connection_config = coerce_config(config if config is not None else settings.database)
        cls.remove_connection()
        engine = Engine.from_config(
            connection_config, registry, log_statements=settings.log_statements
        )
        cls._engine = engine
        logger.debug(
            "record.connect", record=cls.__name__, driver=connection_config.driver
        )
        return engine

    @classmethod
    def connection(cls) -> Engine:
        engine = cls._engine
        if engine is None:
            raise ConnectionNotEstablished(f"No connection established for {cls.__name__}")
        return engine

    @classmethod
    def connected(cls) -> bool:
        return cls._engine is not None

    @classmethod
    def remove_connection(cls) -> None:
        engine = cls.__dict__.get("_engine")
        if engine is None:
            return
        engine.close()
        if cls is Record:
            cls._engine = None
        else:
            # Fall back to the connection of the nearest ancestor
            del cls._engine

    @classmethod
    def transaction(cls) -> TransactionManager:
        return cls.connection().transaction()

    # --- schema ---

    @classmethod
    def table_name(cls) -> str:
        if cls.__table__ is None:
            raise ConfigurationError(f"{cls.__name__} is abstract and has no table")
        return cls.__table__

    @classmethod
    def primary_key(cls) -> str:
        return cls.__primary_key__

    @classmethod
    def columns(cls) -> list[Column]:
        if cls.__dict__.get("_columns") is None:
            cls._columns = cls.connection().columns(cls.table_name(), f"{cls.__name__} Columns")
        return cls._columns  # type: ignore[return-value]

    @classmethod
    def columns_hash(cls) -> dict[str, Column]:
        return {column.name: column for column in cls.columns()}

    @classmethod
    def column_names(cls) -> list[str]:
        return [column.name for column in cls.columns()]

    @classmethod
    def content_columns(cls) -> list[Column]:
        """Columns other than the key, foreign keys and the inheritance column."""
        return [
            column
            for column in cls.columns()
            if column.name != cls.__primary_key__
            and not column.name.endswith("_id")
            and column.name != cls.__inheritance_column__
        ]

    @classmethod
    def reset_column_information(cls) -> None:
        cls._columns = None

    @classmethod
    def human_attribute_name(cls, attribute: str) -> str:
        return humanize(attribute)

    # --- observers ---

    @classmethod
    def add_observer(cls, observer: Observer) -> None:
        """Call ``observer(event, record)`` after every lifecycle event."""
        cls._observers.append(observer)

    @classmethod
    def remove_observer(cls, observer: Observer) -> None:
        cls._observers.remove(observer)

    # --- finders ---

    @classmethod
    def _type_condition(cls) -> Conditions:
        if cls._sti_base is None or cls._sti_base is cls:
            return None
        if cls.__inheritance_column__ not in cls.columns_hash():
            return None
        names = [cls.__name__]
        pending = list(cls.__subclasses__())
        while pending:
            subclass = pending.pop()
            names.append(subclass.__name__)
            pending.extend(subclass.__subclasses__())
        params = {f"sti_type_{index}": name for index, name in enumerate(names)}
        placeholders = ", ".join(f":{key}" for key in params)
        return f"{cls.__inheritance_column__} IN ({placeholders})", params

    @classmethod
    def _select_sql(
        cls,
        conditions: Conditions = None,
        order: str | None = None,
        limit: int | None = None,
        select: str = "*",
    ) -> tuple[str, dict[str, Any]]:
        fragment, params = merge_conditions(conditions, cls._type_condition())
        sql = f"SELECT {select} FROM {cls.table_name()}"
        if fragment:
            sql += f" WHERE {fragment}"
        if order:
            sql += f" ORDER BY {order}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        return sql, params

    @classmethod
    def instantiate(cls, row: dict[str, Any]) -> Record:
        """Build a persisted instance from a row, picking the class named in it."""
        klass: type[Record] = cls
        type_name = row.get(cls.__inheritance_column__)
        if type_name and records.has(type_name):
            candidate = records.get(type_name)
            if issubclass(candidate, cls):
                klass = candidate
        record = klass.__new__(klass)
        record._init_state(dict(row), RecordState.PERSISTED)
        record.fire("after_find")
        record.fire("after_initialize")
        return record

    @classmethod
    def find(cls, *ids: Any) -> Any:
        """Find by primary key.

        One id returns one record; several ids (or a list) return a list.

        Raises:
            RecordNotFound: If any id has no row.
        """
        expects_list = len(ids) != 1 or isinstance(ids[0], (list, tuple))
        if len(ids) == 1 and isinstance(ids[0], (list, tuple)):
            ids = tuple(ids[0])
        if not ids:
            raise RecordNotFound(f"Couldn't find {cls.__name__} without an id")
        params = {f"find_id_{index}": value for index, value in enumerate(ids)}
        placeholders = ", ".join(f":{key}" for key in params)
        found = cls.find_all((f"{cls.__primary_key__} IN ({placeholders})", params))
        if len(found) < len(set(ids)):
            raise RecordNotFound(
                f"Couldn't find {cls.__name__} with {cls.__primary_key__}="
                f"{', '.join(str(value) for value in ids)}"
            )
        if not expects_list:
            return found[0]
        return found

    @classmethod
    def find_first(cls, conditions: Conditions = None, order: str | None = None) -> Any:
        found = cls.find_all(conditions, order, limit=1)
        return found[0] if found else None

    @classmethod
    def find_all(
        cls,
        conditions: Conditions = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Any]:
        sql, params = cls._select_sql(conditions, order, limit)
        return cls.find_by_sql(sql, params)

    @classmethod
    def find_by_sql(cls, sql: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Instantiate every row returned by *sql* (inline or a registry key)."""
        rows = cls.connection().select_all(sql, params, f"{cls.__name__} Load")
        return [cls.instantiate(row) for row in rows]

    @classmethod
    def count(cls, conditions: Conditions = None) -> int:
        sql, params = cls._select_sql(conditions, select="COUNT(*)")
        return cls.count_by_sql(sql, params)

    @classmethod
    def count_by_sql(cls, sql: str, params: dict[str, Any] | None = None) -> int:
        return int(cls.connection().select_value(sql, params, f"{cls.__name__} Count") or 0)

    @classmethod
    def exists(cls, record_id: Any) -> bool:
        return (
            cls.count((f"{cls.__primary_key__} = :exists_id", {"exists_id": record_id})) > 0
        )

    # --- class-level writes ---

    @classmethod
    def create(cls, attributes: dict[str, Any] | None = None, **kwargs: Any) -> Any:
        """Instantiate and save; the record is returned even when invalid."""
        record = cls(attributes, **kwargs)
        record.save()
        return record

    @classmethod
    def update(cls, record_id: Any, attributes: dict[str, Any]) -> Any:
        record = cls.find(record_id)
        record.update_attributes(attributes)
        return record

    @classmethod
    def delete(cls, record_id: Any) -> int:
        """Delete by primary key without instantiating or running callbacks."""
        return cls.delete_all((f"{cls.__primary_key__} = :delete_id", {"delete_id": record_id}))

    @classmethod
    def delete_all(cls, conditions: Conditions = None) -> int:
        fragment, params = merge_conditions(conditions, cls._type_condition())
        sql = f"DELETE FROM {cls.table_name()}"
        if fragment:
            sql += f" WHERE {fragment}"
        return cls.connection().delete(sql, params, f"{cls.__name__} Delete all")

    @classmethod
    def update_all(cls, updates: Conditions, conditions: Conditions = None) -> int:
        """Apply a SET fragment (optionally with params) to every matching row."""
        assignments, params = split_conditions(updates)
        fragment, where_params = merge_conditions(conditions, cls._type_condition())
        sql = f"UPDATE {cls.table_name()} SET {assignments}"
        if fragment:
            sql += f" WHERE {fragment}"
        return cls.connection().update(sql, {**params, **where_params}, f"{cls.__name__} Update all")

    @classmethod
    def destroy_all(cls, conditions: Conditions = None) -> None:
        """Destroy every matching record, running callbacks, in one transaction."""
        with cls.transaction():
            for record in cls.find_all(conditions):
                record.destroy()

    @classmethod
    def increment_counter(cls, counter: str, record_id: Any) -> int:
        return cls._update_counter(counter, record_id, "+")

    @classmethod
    def decrement_counter(cls, counter: str, record_id: Any) -> int:
        return cls._update_counter(counter, record_id, "-")

    @classmethod
    def _update_counter(cls, counter: str, record_id: Any, operator: str) -> int:
        sql = (
            f"UPDATE {cls.table_name()} SET {counter} = COALESCE({counter}, 0) {operator} 1 "
            f"WHERE {cls.__primary_key__} = :counter_id"
        )
        return cls.connection().update(sql, {"counter_id": record_id}, f"{cls.__name__} Counter")

    # --- instance state ---

    def __init__(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> None:
        cls = type(self)
        if cls.__dict__.get("__abstract__", False) or cls.__table__ is None:
            raise ConfigurationError(f"{cls.__name__} is abstract and cannot be instantiated")
        self._init_state(
            {column.name: column.default for column in cls.columns()}, RecordState.NEW
        )
        if cls._sti_base is not cls and cls.__inheritance_column__ in self._attributes:
            self._attributes[cls.__inheritance_column__] = cls.__name__
        self.assign_attributes({**(attributes or {}), **kwargs})
        self.fire("after_initialize")

    def _init_state(self, attributes: dict[str, Any], state: RecordState) -> None:
        self._attributes = attributes
        self._state = state
        self._errors = Errors(self)
        self._association_cache: dict[str, Any] = {}
        self._composition_cache: dict[str, Any] = {}
        self._destroy_pending = False

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if not name.startswith("_"):
            attributes = self.__dict__.get("_attributes")
            if attributes is not None and name in attributes:
                return self.read_attribute(name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        if hasattr(getattr(type(self), name, None), "__set__"):
            object.__setattr__(self, name, value)
            return
        attributes = self.__dict__.get("_attributes")
        if attributes is not None and name in attributes:
            self.write_attribute(name, value)
            return
        self._check_not_frozen()
        object.__setattr__(self, name, value)

    def read_attribute(self, name: str) -> Any:
        """The stored value of *name* coerced through its column type."""
        value = self._attributes.get(name)
        column = type(self).columns_hash().get(name)
        if column is None:
            return value
        return column.type_cast(value)

    def write_attribute(self, name: str, value: Any) -> None:
        self._check_not_frozen()
        self._attributes[name] = value

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    @property
    def attributes(self) -> dict[str, Any]:
        return {name: self.read_attribute(name) for name in self._attributes}

    def assign_attributes(self, attributes: dict[str, Any]) -> None:
        """Mass-assign, dropping protected (or non-accessible) names."""
        for name, value in self._remove_protected(attributes).items():
            if name not in self._attributes and not hasattr(type(self), name):
                raise AttributeError(f"{type(self).__name__!r} has no attribute {name!r}")
            setattr(self, name, value)

    def _remove_protected(self, attributes: dict[str, Any]) -> dict[str, Any]:
        cls = type(self)
        accessible = cls.__attr_accessible__
        protected = {cls.__primary_key__, cls.__inheritance_column__, *cls.__attr_protected__}
        allowed: dict[str, Any] = {}
        for name, value in attributes.items():
            if name in protected:
                continue
            if accessible is not None and name not in accessible:
                continue
            allowed[name] = value
        if len(allowed) != len(attributes):
            logger.debug(
                "record.mass_assignment.filtered",
                record=cls.__name__,
                dropped=sorted(set(attributes) - set(allowed)),
            )
        return allowed

    @property
    def id(self) -> Any:
        return self.read_attribute(type(self).__primary_key__)

    @id.setter
    def id(self, value: Any) -> None:
        self.write_attribute(type(self).__primary_key__, value)

    @property
    def errors(self) -> Errors:
        return self._errors

    @property
    def new_record(self) -> bool:
        return self._state is RecordState.NEW

    @property
    def destroyed(self) -> bool:
        return self._state is RecordState.DESTROYED

    @property
    def frozen(self) -> bool:
        return self.destroyed

    def _check_not_frozen(self) -> None:
        if self.__dict__.get("_state") is RecordState.DESTROYED:
            raise FrozenRecordError(f"Can't modify destroyed {type(self).__name__}")

    def association(self, name: str) -> Any:
        """The per-instance proxy of association *name*."""
        reflection = type(self).__reflections__.get(name)
        if reflection is None:
            raise ConfigurationError(f"{type(self).__name__} has no association {name!r}")
        return reflection.proxy(self)

    def composition(self, name: str, force_reload: bool = False) -> Any:
        """The value object *name*, rebuilt from its columns when forced."""
        composed = type(self).__compositions__.get(name)
        if composed is None:
            raise ConfigurationError(f"{type(self).__name__} has no composition {name!r}")
        return composed.read(self, force_reload)

    def fire(self, event: str) -> None:
        callbacks.fire(self, event)

    # --- validation ---

    def valid(self) -> bool:
        """Run the validation phase; True when no errors were added."""
        phase = "create" if self.new_record else "update"
        self.errors.clear()
        self.fire("before_validation")
        self.fire(f"before_validation_on_{phase}")
        self.validate()
        if phase == "create":
            self.validate_on_create()
        else:
            self.validate_on_update()
        self.fire("after_validation")
        self.fire(f"after_validation_on_{phase}")
        return self.errors.is_empty()

    def validate(self) -> None:
        """Override to add errors on every save."""

    def validate_on_create(self) -> None:
        """Override to add errors when saving a new record."""

    def validate_on_update(self) -> None:
        """Override to add errors when saving an existing record."""

    # --- persistence ---

    def save(self) -> bool:
        """Validate, then insert or update inside a transaction.

        Returns False (and writes nothing) when validation fails.

        Raises:
            FrozenRecordError: If the record was destroyed.
        """
        self._check_not_frozen()
        with self.transaction():
            if not self.valid():
                logger.debug(
                    "record.invalid", record=type(self).__name__, errors=self.errors.full_messages()
                )
                return False
            self.fire("before_save")
            if self.new_record:
                self._create()
            else:
                self._update()
            self.fire("after_save")
        return True

    def save_or_raise(self) -> None:
        """Like save, raising RecordNotSaved instead of returning False."""
        if not self.save():
            raise RecordNotSaved(
                f"{type(self).__name__} failed validation: {', '.join(self.errors.full_messages())}"
            )

    def _storable_attributes(self, include_primary_key: bool) -> dict[str, Any]:
        cls = type(self)
        values: dict[str, Any] = {}
        for column in cls.columns():
            if column.name == cls.__primary_key__ and not include_primary_key:
                continue
            values[column.name] = column.to_storable(self._attributes.get(column.name))
        return values

    def _create(self) -> None:
        cls = type(self)
        self.fire("before_create")
        values = self._storable_attributes(include_primary_key=self.id is not None)
        sql = (
            f"INSERT INTO {cls.table_name()} ({', '.join(values)}) "
            f"VALUES ({', '.join(f':{name}' for name in values)})"
        )
        new_id = cls.connection().insert(sql, values, f"{cls.__name__} Create", cls.__primary_key__)
        if self.id is None:
            self._attributes[cls.__primary_key__] = new_id
        self._state = RecordState.PERSISTED
        logger.debug("record.create", record=cls.__name__, id=self.id)
        self.fire("after_create")

    def _update(self) -> None:
        cls = type(self)
        self.fire("before_update")
        values = self._storable_attributes(include_primary_key=False)
        assignments = ", ".join(f"{name} = :{name}" for name in values)
        cls.connection().update(
            f"UPDATE {cls.table_name()} SET {assignments} WHERE {cls.__primary_key__} = :record_pk",
            {**values, "record_pk": self.id},
            f"{cls.__name__} Update",
        )
        logger.debug("record.update", record=cls.__name__, id=self.id)
        self.fire("after_update")

    def update_attribute(self, name: str, value: Any) -> bool:
        setattr(self, name, value)
        return self.save()

    def update_attributes(self, attributes: dict[str, Any]) -> bool:
        self.assign_attributes(attributes)
        return self.save()

    def destroy(self) -> None:
        """Run destroy callbacks and delete the row in one transaction, then freeze.

        An exception from any callback, including a dependent's destroy,
        rolls the whole operation back and propagates. Inside an enclosing
        transaction the record is frozen only once that transaction commits.
        """
        if self.destroyed or self._destroy_pending:
            return
        cls = type(self)
        engine = cls.connection()
        with self.transaction():
            self.fire("before_destroy")
            if not self.new_record:
                engine.delete(
                    f"DELETE FROM {cls.table_name()} WHERE {cls.__primary_key__} = :record_pk",
                    {"record_pk": self.id},
                    f"{cls.__name__} Destroy",
                )
            self.fire("after_destroy")
            self._destroy_pending = True
            engine.after_commit(self._mark_destroyed)
            engine.after_rollback(self._clear_pending_destroy)

    def _mark_destroyed(self) -> None:
        self._destroy_pending = False
        self._state = RecordState.DESTROYED
        logger.debug("record.destroy", record=type(self).__name__, id=self.id)

    def _clear_pending_destroy(self) -> None:
        self._destroy_pending = False

    def reload(self) -> Record:
        """Re-read the row and drop cached associations and compositions."""
        cls = type(self)
        row = cls.connection().select_one(
            f"SELECT * FROM {cls.table_name()} WHERE {cls.__primary_key__} = :record_pk",
            {"record_pk": self.id},
            f"{cls.__name__} Reload",
        )
        if row is None:
            raise RecordNotFound(f"Couldn't find {cls.__name__} with {cls.__primary_key__}={self.id}")
        self._attributes = row
        self._association_cache.clear()
        self._composition_cache.clear()
        return self

    # --- identity ---

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        return self.id is not None and self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash((type(self), self.id))

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={self.read_attribute(name)!r}" for name in self._attributes)
        return f"<{type(self).__name__} {fields}>"

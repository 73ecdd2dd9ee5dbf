"""Integration tests for records against SQLite.

Covers: default coercion, finders, persistence, validation, the callback
sequence, observers, single-table inheritance, mass-assignment protection,
value-object composition and connection handling.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

import pytest
from structlog.testing import capture_logs

from row_record.core.config import reset_settings
from row_record.core.connection import ConnectionConfig
from row_record.core.engine import Engine
from row_record.core.exceptions import (
    AdapterNotFound,
    AdapterNotSpecified,
    CallbackDefinitionError,
    ConnectionNotEstablished,
    FrozenRecordError,
    FrozenValueError,
    RecordNotFound,
    RecordNotSaved,
    StatementInvalid,
    UnknownOptionError,
)
from row_record.mapping.aggregation import ComposedOf
from row_record.mapping.record import Record

# --- Value objects ---


class Money:
    def __init__(self, amount: int, currency: str = "USD") -> None:
        self.amount = amount
        self.currency = currency


class Address:
    def __init__(self, street: str, city: str, country: str) -> None:
        self.street = street
        self.city = city
        self.country = country


class GpsLocation:
    def __init__(self, latitude: str) -> None:
        self.latitude = latitude


# --- Test records ---


class Topic(Record):
    def validate(self) -> None:
        self.errors.add_on_empty(["title"])

    def validate_on_create(self) -> None:
        if self.title == "Wrong Create":
            self.errors.add("title", "is Wrong Create")

    def validate_on_update(self) -> None:
        if self.title == "Wrong Update":
            self.errors.add("title", "is Wrong Update")


class Reply(Topic):
    def validate(self) -> None:
        super().validate()
        if not self.content:
            self.errors.add("content", "Empty")


class GuardedTopic(Record):
    __table__ = "topics"
    __attr_protected__ = ("approved",)


class ListedTopic(Record):
    __table__ = "topics"
    __attr_accessible__ = ("title", "author_name")


class Customer(Record):
    balance = ComposedOf(class_name="Money", mapping=("balance", "amount"))
    address = ComposedOf(
        mapping=[
            ("address_street", "street"),
            ("address_city", "city"),
            ("address_country", "country"),
        ]
    )
    gps_location = ComposedOf()


class AuditTrail:
    def __init__(self) -> None:
        self.seen: list[str] = []

    def after_create(self, record: Any) -> None:
        self.seen.append(f"created {record.name}")


trail = AuditTrail()


class Programmer(Record):
    __table__ = "developers"
    __callbacks__ = {
        event: [f"log_{event}"]
        for event in (
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
    }

    def after_initialize(self) -> None:
        self.history = ["after_initialize"]

    def after_find(self) -> None:
        self.found = True

    def __getattr__(self, name: str) -> Any:
        if name.startswith("log_"):
            event = name[4:]
            return lambda: self.history.append(event)
        return super().__getattr__(name)


class Lead(Programmer):
    __callbacks__ = {"before_save": [lambda record: record.history.append("closure")]}

    def before_save(self) -> None:
        self.history.append("override")


class TestDefaultsAndCoercion:
    def test_new_record_uses_coerced_defaults(self, db: Engine) -> None:
        topic = Topic()
        assert topic.new_record
        assert topic.id is None
        assert topic.approved is True
        assert topic.replies_count == 0
        assert topic.written_on is None

    def test_values_round_trip(self, db: Engine) -> None:
        written_on = dt.datetime(2003, 7, 16, 15, 28)
        topic = Topic.create(
            title="The First Topic",
            written_on=written_on,
            last_read=dt.date(2004, 4, 15),
            content=["one", 2],
            approved=False,
        )
        found = Topic.find(topic.id)
        assert found.written_on == written_on
        assert found.last_read == dt.date(2004, 4, 15)
        assert found.content == ["one", 2]
        assert found.approved is False
        assert isinstance(found.replies_count, int)

    def test_string_integers_are_coerced_on_read(self, db: Engine) -> None:
        topic = Topic(title="Coerced")
        topic.replies_count = "12"
        assert topic.replies_count == 12
        topic.replies_count = "bad"
        assert topic.replies_count == 0

    def test_attributes(self, db: Engine) -> None:
        topic = Topic(title="Attributes")
        attributes = topic.attributes
        assert attributes["title"] == "Attributes"
        assert attributes["approved"] is True
        assert set(attributes) == set(Topic.column_names())

    def test_unknown_attribute(self, db: Engine) -> None:
        with pytest.raises(AttributeError, match="nonsense"):
            Topic(nonsense=1)
        with pytest.raises(AttributeError):
            _ = Topic().nonsense

    def test_content_columns_and_human_names(self, db: Engine) -> None:
        names = [column.name for column in Topic.content_columns()]
        assert "title" in names
        assert not {"id", "parent_id", "type"} & set(names)
        assert Topic.human_attribute_name("author_email_address") == "Author email address"
        assert Topic.human_attribute_name("parent_id") == "Parent"

    def test_reset_column_information(self, db: Engine) -> None:
        Topic.columns()
        db.execute("ALTER TABLE topics ADD COLUMN bonus INTEGER DEFAULT 3")
        try:
            assert "bonus" not in Topic.column_names()
            Topic.reset_column_information()
            assert Topic(title="Fresh").bonus == 3
        finally:
            Topic.reset_column_information()


class TestFinders:
    @pytest.fixture
    def topics(self, db: Engine) -> list[Topic]:
        return [
            Topic.create(title="The First Topic", author_name="David", replies_count=1),
            Topic.create(title="The Second Topic", author_name="Mary", replies_count=0),
            Topic.create(title="The Third Topic", author_name="David", replies_count=5),
        ]

    def test_find_one(self, topics: list[Topic]) -> None:
        assert Topic.find(topics[0].id).title == "The First Topic"

    def test_find_many(self, topics: list[Topic]) -> None:
        found = Topic.find(topics[0].id, topics[2].id)
        assert [topic.title for topic in found] == ["The First Topic", "The Third Topic"]
        assert Topic.find([topics[1].id]) == [topics[1]]

    def test_find_missing(self, topics: list[Topic]) -> None:
        with pytest.raises(RecordNotFound):
            Topic.find(999)
        with pytest.raises(RecordNotFound):
            Topic.find(topics[0].id, 999)

    def test_find_all_with_conditions_order_limit(self, topics: list[Topic]) -> None:
        found = Topic.find_all(("author_name = :author", {"author": "David"}), "replies_count DESC")
        assert [topic.title for topic in found] == ["The Third Topic", "The First Topic"]
        assert len(Topic.find_all(limit=2)) == 2

    def test_find_first(self, topics: list[Topic]) -> None:
        assert Topic.find_first("replies_count > 2").title == "The Third Topic"
        assert Topic.find_first("replies_count > 100") is None

    def test_find_by_sql(self, topics: list[Topic]) -> None:
        found = Topic.find_by_sql("SELECT * FROM topics WHERE author_name = :a", {"a": "Mary"})
        assert found == [topics[1]]

    def test_count_and_exists(self, topics: list[Topic]) -> None:
        assert Topic.count() == 3
        assert Topic.count("author_name = 'David'") == 2
        assert Topic.exists(topics[0].id)
        assert not Topic.exists(999)
        assert Topic.count_by_sql("SELECT COUNT(*) FROM topics WHERE replies_count > :n", {"n": 0}) == 2

    def test_bad_sql_is_statement_invalid(self, topics: list[Topic]) -> None:
        with pytest.raises(StatementInvalid, match="SELECT \\* FROM nowhere"):
            Topic.find_by_sql("SELECT * FROM nowhere")

    def test_equality_by_class_and_id(self, topics: list[Topic]) -> None:
        assert Topic.find(topics[0].id) == topics[0]
        assert Topic.find(topics[0].id) != topics[1]
        assert Topic() != Topic()
        assert GuardedTopic.find(topics[0].id) != topics[0]
        assert len({Topic.find(topics[0].id), topics[0]}) == 1


class TestPersistence:
    def test_create_assigns_id(self, db: Engine) -> None:
        topic = Topic.create(title="New")
        assert not topic.new_record
        assert topic.id is not None
        assert Topic.count() == 1

    def test_update(self, db: Engine) -> None:
        topic = Topic.create(title="Before")
        topic.title = "After"
        assert topic.save()
        assert Topic.find(topic.id).title == "After"

    def test_update_attribute_and_attributes(self, db: Engine) -> None:
        topic = Topic.create(title="Before")
        topic.update_attribute("author_name", "David")
        topic.update_attributes({"title": "After", "replies_count": 3})
        found = Topic.find(topic.id)
        assert (found.title, found.author_name, found.replies_count) == ("After", "David", 3)

    def test_class_level_update(self, db: Engine) -> None:
        topic = Topic.create(title="Before")
        assert Topic.update(topic.id, {"title": "After"}).title == "After"
        assert Topic.find(topic.id).title == "After"

    def test_save_or_raise(self, db: Engine) -> None:
        with pytest.raises(RecordNotSaved, match="Title can't be empty"):
            Topic(title="").save_or_raise()
        Topic(title="Kept").save_or_raise()
        assert Topic.count() == 1

    def test_reload(self, db: Engine) -> None:
        topic = Topic.create(title="Original")
        Topic.update_all(("title = :title", {"title": "Changed"}), f"id = {topic.id}")
        assert topic.title == "Original"
        assert topic.reload().title == "Changed"

    def test_destroy_freezes(self, db: Engine) -> None:
        topic = Topic.create(title="Doomed")
        topic.destroy()
        assert topic.destroyed
        assert topic.title == "Doomed"
        with pytest.raises(FrozenRecordError):
            topic.title = "Revived"
        with pytest.raises(FrozenRecordError):
            topic.save()
        with pytest.raises(RecordNotFound):
            Topic.find(topic.id)

    def test_class_level_deletes(self, db: Engine) -> None:
        first = Topic.create(title="One", author_name="David")
        Topic.create(title="Two", author_name="David")
        Topic.create(title="Three", author_name="Mary")
        assert Topic.delete(first.id) == 1
        assert Topic.delete_all("author_name = 'David'") == 1
        Topic.destroy_all()
        assert Topic.count() == 0

    def test_transaction_rolls_back(self, db: Engine) -> None:
        with pytest.raises(RuntimeError), Topic.transaction():
            Topic.create(title="Ghost")
            raise RuntimeError("abort")
        assert Topic.count() == 0

    def test_lifecycle_is_logged(self, db: Engine) -> None:
        with capture_logs() as logs:
            topic = Topic.create(title="Logged")
            topic.destroy()
        events = [entry["event"] for entry in logs]
        assert "record.create" in events
        assert "record.destroy" in events
        assert "sql.execute" in events


class TestValidation:
    def test_invalid_record_is_not_saved(self, db: Engine) -> None:
        topic = Topic.create(title="")
        assert topic.new_record
        assert topic.errors.on("title") == "can't be empty"
        assert topic.errors.full_messages() == ["Title can't be empty"]
        assert Topic.count() == 0

    def test_save_returns_false(self, db: Engine) -> None:
        topic = Topic()
        assert topic.save() is False
        topic.title = "Fixed"
        assert topic.save() is True
        assert topic.errors.is_empty()

    def test_create_and_update_phases(self, db: Engine) -> None:
        topic = Topic(title="Wrong Create")
        assert not topic.valid()
        assert topic.errors.on("title") == "is Wrong Create"

        topic = Topic.create(title="Right")
        topic.title = "Wrong Update"
        assert not topic.save()
        assert topic.errors.on("title") == "is Wrong Update"
        assert Topic.find(topic.id).title == "Right"

    def test_subclass_validation(self, db: Engine) -> None:
        reply = Reply(title="Re: first")
        assert not reply.valid()
        assert reply.errors.on("content") == "Empty"
        assert Reply(title="", content="x").errors.count() == 0


class TestCallbacks:
    def test_create_sequence(self, db: Engine) -> None:
        programmer = Programmer.create(name="David")
        assert programmer.history == [
            "after_initialize",
            "before_validation",
            "before_validation_on_create",
            "after_validation",
            "after_validation_on_create",
            "before_save",
            "before_create",
            "after_create",
            "after_save",
        ]

    def test_update_and_destroy_sequence(self, db: Engine) -> None:
        programmer = Programmer.create(name="David")
        programmer.history = []
        programmer.save()
        assert programmer.history == [
            "before_validation",
            "before_validation_on_update",
            "after_validation",
            "after_validation_on_update",
            "before_save",
            "before_update",
            "after_update",
            "after_save",
        ]
        programmer.history = []
        programmer.destroy()
        assert programmer.history == ["before_destroy", "after_destroy"]

    def test_after_find_and_initialize(self, db: Engine) -> None:
        programmer = Programmer.create(name="David")
        found = Programmer.find(programmer.id)
        assert found.found is True
        assert found.history == ["after_initialize"]

    def test_parent_queue_child_queue_override_observers(self, db: Engine) -> None:
        seen: list[str] = []

        def programmer_observer(event: str, record: Any) -> None:
            seen.append(f"programmer:{event}")

        def lead_observer(event: str, record: Any) -> None:
            seen.append(f"lead:{event}")

        Programmer.add_observer(programmer_observer)
        Lead.add_observer(lead_observer)
        try:
            lead = Lead(name="Jamis")
            lead.history = []
            lead.fire("before_save")
        finally:
            Programmer.remove_observer(programmer_observer)
            Lead.remove_observer(lead_observer)
        assert lead.history == ["before_save", "closure", "override"]
        assert seen == ["lead:before_save", "programmer:before_save"]

    def test_delegate_receives_record(self, db: Engine) -> None:
        class Hired(Record):
            __table__ = "developers"
            __callbacks__ = {"after_create": [trail]}

        trail.seen.clear()
        Hired.create(name="Marcel")
        assert trail.seen == ["created Marcel"]

    def test_unusable_registration_fails_at_definition(self) -> None:
        with pytest.raises(CallbackDefinitionError):

            class Broken(Record):
                __table__ = "developers"
                __callbacks__ = {"before_save": [42]}

    def test_unknown_event_fails_at_definition(self) -> None:
        with pytest.raises(CallbackDefinitionError):

            class Misspelled(Record):
                __table__ = "developers"
                __callbacks__ = {"before_sav": ["touch"]}

    def test_callback_exception_rolls_back_save(self, db: Engine) -> None:
        def explode(record: Any) -> None:
            raise RuntimeError("after_save failed")

        class Fragile(Record):
            __table__ = "developers"
            __callbacks__ = {"after_save": [explode]}

        with pytest.raises(RuntimeError):
            Fragile.create(name="Tobias")
        assert Fragile.count() == 0


class TestSingleTableInheritance:
    def test_subclass_records_its_type(self, db: Engine) -> None:
        reply = Reply.create(title="Re: first", content="text")
        assert reply.type == "Reply"
        assert Topic.create(title="first").type is None

    def test_base_finder_instantiates_subclass(self, db: Engine) -> None:
        reply = Reply.create(title="Re: first", content="text")
        assert isinstance(Topic.find(reply.id), Reply)

    def test_subclass_finders_filter_by_type(self, db: Engine) -> None:
        Topic.create(title="first")
        reply = Reply.create(title="Re: first", content="text")
        assert Topic.count() == 2
        assert Reply.count() == 1
        assert Reply.find_all() == [reply]

    def test_shared_table(self) -> None:
        assert Reply.table_name() == Topic.table_name() == "topics"


class TestMassAssignment:
    def test_protected_attributes_are_skipped(self, db: Engine) -> None:
        topic = GuardedTopic(title="Guarded", approved=False)
        assert topic.approved is True
        topic.approved = False
        assert topic.approved is False

    def test_accessible_attributes_whitelist(self, db: Engine) -> None:
        topic = ListedTopic(title="Listed", author_name="David", replies_count=9)
        assert topic.title == "Listed"
        assert topic.replies_count == 0

    def test_primary_key_and_type_are_protected(self, db: Engine) -> None:
        topic = Topic(id=42, type="Reply", title="Plain")
        assert topic.id is None
        assert topic.type is None


class TestComposition:
    @pytest.fixture
    def customer(self, db: Engine) -> Customer:
        return Customer.create(
            name="David",
            balance=Money(50),
            address_street="Funny Street",
            address_city="Scary Town",
            address_country="Loony Land",
            gps_location=GpsLocation("35.544623640962634x-105.9309951055148"),
        )

    def test_reads_value_objects(self, customer: Customer) -> None:
        found = Customer.find(customer.id)
        assert found.balance.amount == 50
        assert found.address.city == "Scary Town"
        assert found.gps_location.latitude == "35.544623640962634x-105.9309951055148"

    def test_assignment_writes_columns(self, customer: Customer) -> None:
        customer.balance = Money(100)
        customer.address = Address("Other Street", "Nice Town", "Cozy Land")
        customer.save()
        found = Customer.find(customer.id)
        assert found.read_attribute("balance") == 100
        assert found.address.street == "Other Street"

    def test_assigned_value_is_frozen(self, customer: Customer) -> None:
        customer.balance = Money(100)
        with pytest.raises(FrozenValueError):
            customer.balance.amount = 1

    def test_force_reload(self, customer: Customer) -> None:
        cached = customer.balance
        customer.write_attribute("balance", 75)
        assert customer.balance is cached
        assert customer.composition("balance", force_reload=True).amount == 75

    def test_misspelled_option_fails_at_definition(self) -> None:
        with pytest.raises(UnknownOptionError, match="nam"):

            class Broken(Record):
                __table__ = "customers"
                balance = ComposedOf(class_name="Money", nam="balance")


class TestConnection:
    def test_not_established(self) -> None:
        with pytest.raises(ConnectionNotEstablished):
            Topic.connection()

    def test_missing_adapter(self) -> None:
        with pytest.raises(AdapterNotSpecified):
            Topic.establish_connection({"database": ":memory:"})

    def test_unknown_adapter(self) -> None:
        with pytest.raises(AdapterNotFound):
            Topic.establish_connection({"adapter": "frontbase"})

    def test_no_config_and_no_settings(self) -> None:
        with pytest.raises(AdapterNotSpecified):
            Record.establish_connection()

    def test_settings_database_is_used(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ROW_RECORD_DATABASE__DRIVER", "sqlite")
        reset_settings()
        engine = Record.establish_connection()
        try:
            assert engine.select_value("SELECT 1") == 1
            assert Topic.connection() is engine
        finally:
            Record.remove_connection()

    def test_subclass_connection_overrides_parent(
        self, db: Engine, sqlite_config: ConnectionConfig
    ) -> None:
        other = Customer.establish_connection(sqlite_config)
        try:
            assert Customer.connection() is other
            assert Topic.connection() is db
        finally:
            Customer.remove_connection()
        assert Customer.connection() is db

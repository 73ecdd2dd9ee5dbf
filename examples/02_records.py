"""
Example 02: Records, validation, callbacks and value objects

Record classes map to tables by name and read their columns from the
catalog. Subclasses share the parent's table and are told apart by the
``type`` column.
"""

from row_record import ComposedOf, Record


class Money:
    def __init__(self, amount, currency="USD"):
        self.amount = amount
        self.currency = currency

    def __repr__(self):
        return f"Money({self.amount}, {self.currency!r})"


class Topic(Record):
    __callbacks__ = {"before_save": ["strip_title"]}

    def strip_title(self):
        if self.title:
            self.title = self.title.strip()

    def validate(self):
        self.errors.add_on_empty("title")


class Reply(Topic):
    def validate_on_create(self):
        if self.parent_id is None:
            self.errors.add("parent_id", "must point at a topic")


class Customer(Record):
    balance = ComposedOf(class_name="Money", mapping=("balance", "amount"))


def main():
    engine = Record.establish_connection({"driver": "sqlite", "database": ":memory:", "pool_size": 1})
    engine.execute(
        "CREATE TABLE topics (id INTEGER PRIMARY KEY AUTOINCREMENT, title VARCHAR(255), "
        "approved BOOLEAN DEFAULT 1, parent_id INTEGER, type VARCHAR(50))"
    )
    engine.execute(
        "CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, name VARCHAR(100), balance INTEGER DEFAULT 0)"
    )

    print("=== Persistence ===\n")
    topic = Topic.create(title="  The first topic  ")
    print(f"created {topic!r}")
    print(f"defaults from the catalog: approved={topic.approved!r}")

    empty = Topic.create(title="")
    print(f"saved empty topic: {not empty.new_record}, errors: {empty.errors.full_messages()}")

    print("\n=== Single-table inheritance ===\n")
    reply = Reply.create(title="Re: first", parent_id=topic.id)
    print(f"type column: {reply.type!r}")
    print(f"Topic.find returns {type(Topic.find(reply.id)).__name__}")
    print(f"{Topic.count()} topics, {Reply.count()} replies")

    print("\n=== Value objects ===\n")
    customer = Customer.create(name="David", balance=Money(50))
    print(f"balance: {Customer.find(customer.id).balance!r}")

    topic.destroy()
    print(f"\ndestroyed topic is frozen: {topic.frozen}")
    Record.remove_connection()


if __name__ == "__main__":
    main()

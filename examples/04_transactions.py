"""
Example 04: Transactions

Every save and destroy runs in a transaction. Nested scopes join the
outermost one, so an exception anywhere rolls back all of it.
"""

from row_record import Record


class Account(Record):
    def validate(self):
        if self.balance is not None and self.balance < 0:
            self.errors.add("balance", "can't go negative")


def transfer(source, target, amount):
    with Account.transaction():
        source.balance -= amount
        target.balance += amount
        target.save_or_raise()
        source.save_or_raise()


def main():
    engine = Record.establish_connection({"driver": "sqlite", "database": ":memory:", "pool_size": 1})
    engine.execute("CREATE TABLE accounts (id INTEGER PRIMARY KEY AUTOINCREMENT, balance INTEGER DEFAULT 0)")

    david = Account.create(balance=100)
    mary = Account.create(balance=0)

    transfer(david, mary, 40)
    print(f"after transfer: david={Account.find(david.id).balance} mary={Account.find(mary.id).balance}")

    try:
        transfer(david, mary, 500)
    except Exception as e:
        print(f"transfer failed: {e}")
    print(f"after rollback: david={Account.find(david.id).balance} mary={Account.find(mary.id).balance}")

    Record.remove_connection()


if __name__ == "__main__":
    main()

"""
Example 03: Associations

Associations are declared as class attributes and resolve their target
class by name, so declaration order does not matter. Collections are
loaded on first access and cached until reloaded.
"""

from row_record import BelongsTo, HasAndBelongsToMany, HasMany, HasOne, Record

SCHEMA = [
    "CREATE TABLE companies (id INTEGER PRIMARY KEY AUTOINCREMENT, type VARCHAR(50), "
    "firm_id INTEGER, name VARCHAR(50), companies_count INTEGER DEFAULT 0)",
    "CREATE TABLE accounts (id INTEGER PRIMARY KEY AUTOINCREMENT, firm_id INTEGER, credit_limit INTEGER)",
    "CREATE TABLE developers (id INTEGER PRIMARY KEY AUTOINCREMENT, name VARCHAR(100))",
    "CREATE TABLE projects (id INTEGER PRIMARY KEY AUTOINCREMENT, name VARCHAR(100))",
    "CREATE TABLE developers_projects (developer_id INTEGER NOT NULL, project_id INTEGER NOT NULL)",
]


class Company(Record):
    pass


class Firm(Company):
    clients = HasMany(order="id", dependent=True)
    account = HasOne(dependent=True)


class Client(Company):
    firm = BelongsTo(counter_cache=True)


class Account(Record):
    firm = BelongsTo()


class Developer(Record):
    projects = HasAndBelongsToMany()


class Project(Record):
    developers = HasAndBelongsToMany()


def main():
    engine = Record.establish_connection({"driver": "sqlite", "database": ":memory:", "pool_size": 1})
    for statement in SCHEMA:
        engine.execute(statement)

    print("=== has_many / belongs_to ===\n")
    firm = Firm.create(name="37signals")
    firm.clients.create(name="Summit")
    firm.clients.add(Client(name="Microsoft"))
    print(f"clients: {[client.name for client in firm.clients]}")
    print(f"counter cache: {Firm.find(firm.id).companies_count}")
    summit = Client.find_first("name = 'Summit'")
    print(f"Summit belongs to {summit.firm.name}")

    print("\n=== has_one ===\n")
    firm.account = Account(credit_limit=50)
    print(f"account credit limit: {Firm.find(firm.id).account.credit_limit}")

    print("\n=== has_and_belongs_to_many ===\n")
    david = Developer.create(name="David")
    david.projects.add(Project(name="Active Record"), Project(name="Action Pack"))
    for project in david.projects:
        print(f"  {project.name}: {project.developers.count()} developer(s)")

    print("\n=== Cascading destroy ===\n")
    firm.destroy()
    print(f"{Client.count()} clients and {Account.count()} accounts left")
    Record.remove_connection()


if __name__ == "__main__":
    main()

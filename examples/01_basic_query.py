"""
Example 01: Engine and SQL registry

This example runs statements directly through RowRecord's Engine, using
inline SQL and SQL kept in files under a registry directory.
"""

import tempfile
from pathlib import Path

from row_record import ConnectionConfig, Engine, SQLRegistry, setup_logging


def main():
    setup_logging(level="DEBUG", log_format="console")

    # Create temporary SQL files directory
    sql_dir = Path(tempfile.mkdtemp())
    (sql_dir / "firm").mkdir()
    (sql_dir / "firm" / "by_name.sql").write_text("SELECT * FROM companies WHERE name = :name")
    (sql_dir / "firm" / "count.sql").write_text("SELECT COUNT(*) FROM companies")

    config = ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)
    engine = Engine.from_config(config, SQLRegistry(sql_dir))

    engine.execute(
        "CREATE TABLE companies (id INTEGER PRIMARY KEY AUTOINCREMENT, name VARCHAR(50), rating INTEGER DEFAULT 1)"
    )
    for name in ("37signals", "Summit", "Microsoft"):
        new_id = engine.insert("INSERT INTO companies (name) VALUES (:name)", {"name": name}, "Company Create")
        print(f"inserted {name} with id {new_id}")

    print("\n=== Reading ===\n")
    print(engine.select_one("firm.by_name", {"name": "Summit"}))
    print(f"{engine.select_value('firm.count')} companies")
    for row in engine.select_all("SELECT name, rating FROM companies ORDER BY name"):
        print(f"  - {row['name']} ({row['rating']})")

    print("\n=== Catalog ===\n")
    for column in engine.columns("companies"):
        print(f"  {column.name}: {column.type.value} default={column.default!r}")

    print(f"\ntime spent in the database: {engine.reset_runtime():.6f}s")
    engine.close()


if __name__ == "__main__":
    main()

"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from row_record.core.config import reset_settings
from row_record.core.connection import ConnectionConfig
from row_record.core.engine import Engine
from row_record.mapping.record import Record

SCHEMA = [
    """CREATE TABLE companies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        type VARCHAR(50),
        ruby_type VARCHAR(50),
        firm_id INTEGER,
        client_of INTEGER,
        name VARCHAR(50),
        rating INTEGER DEFAULT 1,
        companies_count INTEGER DEFAULT 0
    )""",
    """CREATE TABLE accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        firm_id INTEGER,
        credit_limit INTEGER
    )""",
    """CREATE TABLE developers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100),
        salary INTEGER DEFAULT 70000
    )""",
    """CREATE TABLE projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100)
    )""",
    """CREATE TABLE developers_projects (
        developer_id INTEGER NOT NULL,
        project_id INTEGER NOT NULL
    )""",
    """CREATE TABLE customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name VARCHAR(100),
        balance INTEGER DEFAULT 0,
        address_street VARCHAR(100),
        address_city VARCHAR(100),
        address_country VARCHAR(100),
        gps_location VARCHAR(100)
    )""",
    """CREATE TABLE topics (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title VARCHAR(255),
        author_name VARCHAR(255),
        author_email_address VARCHAR(255),
        written_on DATETIME,
        last_read DATE,
        content TEXT,
        approved BOOLEAN DEFAULT 1,
        replies_count INTEGER DEFAULT 0,
        parent_id INTEGER,
        type VARCHAR(50)
    )""",
]


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config."""
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def tmp_sql_dir(tmp_path: Path) -> Path:
    """Temporary directory for SQL files."""
    return tmp_path / "sql"


@pytest.fixture
def write_sql(tmp_sql_dir: Path):
    """Helper to write SQL files into the temp directory.

    Usage:
        write_sql("firm/clients.sql", "SELECT * FROM companies WHERE client_of = :id")
    """

    def _write(relative_path: str, content: str) -> Path:
        file_path = tmp_sql_dir / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return file_path

    return _write


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ROW_RECORD_* variables from the outer environment out of tests."""
    for key in list(os.environ):
        if key.upper().startswith("ROW_RECORD_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def db(sqlite_config: ConnectionConfig) -> Iterator[Engine]:
    """Connect every record class to a fresh in-memory database with the test schema."""
    engine = Record.establish_connection(sqlite_config)
    for statement in SCHEMA:
        engine.execute(statement)
    yield engine
    Record.remove_connection()

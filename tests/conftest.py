"""
Pytest configuration for QueryDesk.

Provides fixtures for:
- A throwaway settings database (APSW)
- A seeded DuckDB warehouse file
- A Flask app and test client wired to both
"""

from collections.abc import Generator
from datetime import date
from pathlib import Path

import duckdb
import pytest
from flask import Flask
from flask.testing import FlaskClient

from querydesk import create_app
from querydesk.db import close_standalone_db, init_db_at

REGIONS = ["north", "south", "east", "west"]


def sales_rows() -> list[tuple]:
    """Twelve sales: ids 1..12, amount id*10, sold on 2024-01-<id>."""
    rows = []
    for i in range(1, 13):
        if i == 2:
            note = "bulk, wholesale"
        elif i == 3:
            note = None
        else:
            note = f"note {i}"
        rows.append((i, REGIONS[(i - 1) % 4], float(i * 10), date(2024, 1, i), note))
    return rows


@pytest.fixture
def settings_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[str]:
    path = str(tmp_path / "querydesk.sqlite3")
    monkeypatch.setenv("QUERYDESK_DB", path)
    init_db_at(path)
    yield path
    close_standalone_db()


@pytest.fixture
def engine_db(tmp_path: Path) -> str:
    path = str(tmp_path / "warehouse.duckdb")
    conn = duckdb.connect(path)
    conn.execute(
        "CREATE TABLE sales (id INTEGER, region VARCHAR, amount DOUBLE, "
        "sold_on DATE, note VARCHAR)"
    )
    conn.executemany("INSERT INTO sales VALUES (?, ?, ?, ?, ?)", sales_rows())
    conn.execute("CREATE TABLE customers (id INTEGER NOT NULL, name VARCHAR, active BOOLEAN)")
    conn.execute("INSERT INTO customers VALUES (1, 'Ada', true), (2, 'Grace', false)")
    conn.close()
    return path


@pytest.fixture
def app(settings_db: str, engine_db: str) -> Flask:
    return create_app(
        {
            "TESTING": True,
            "DATABASE_PATH": settings_db,
            "ENGINE_DATABASE": engine_db,
            "ENGINE_READ_ONLY": False,
        }
    )


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()

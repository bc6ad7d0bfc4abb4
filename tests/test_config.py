from pathlib import Path

import apsw
import pytest

from querydesk import create_app
from querydesk.config import (
    REGISTRY,
    ConfigType,
    parse_value,
    resolve_entry,
    serialize_value,
)


def test_keys_are_unique() -> None:
    assert len({e.key for e in REGISTRY}) == len(REGISTRY)
    assert len({e.app_key for e in REGISTRY}) == len(REGISTRY)


def test_resolve_entry() -> None:
    entry = resolve_entry("query.default_page_size")
    assert entry is not None
    assert entry.type is ConfigType.INT
    assert resolve_entry("query.nope") is None


@pytest.mark.parametrize(
    ("key", "raw", "expected"),
    [
        ("server.port", "9000", 9000),
        ("engine.read_only", "yes", True),
        ("engine.read_only", "off", False),
        ("server.cors_origins", "http://a, ,http://b", ["http://a", "http://b"]),
        ("engine.database", "data/w.duckdb", "data/w.duckdb"),
    ],
)
def test_parse_value(key: str, raw: str, expected: object) -> None:
    entry = resolve_entry(key)
    assert entry is not None
    assert parse_value(entry, raw) == expected


def test_serialize_value() -> None:
    cors = resolve_entry("server.cors_origins")
    debug = resolve_entry("server.debug")
    assert cors is not None and debug is not None
    assert serialize_value(cors, ["http://a", "http://b"]) == "http://a, http://b"
    assert serialize_value(debug, False) == "false"


def test_bad_int_rejected() -> None:
    entry = resolve_entry("server.port")
    assert entry is not None
    with pytest.raises(ValueError):
        parse_value(entry, "eighty")


class TestCreateApp:
    def test_defaults_without_settings(self, settings_db: str) -> None:
        app = create_app()
        assert app.config["DEFAULT_PAGE_SIZE"] == 50
        assert app.config["ENGINE_DATABASE"] == str(Path(settings_db).parent / "warehouse.duckdb")

    def test_settings_loaded_from_db(self, settings_db: str) -> None:
        conn = apsw.Connection(settings_db)
        conn.execute(
            "INSERT INTO app_setting (key, value) VALUES "
            "('query.default_page_size', '25'), ('engine.read_only', 'false'), "
            "('engine.database', '/srv/data/w.duckdb')"
        )
        conn.close()

        app = create_app()
        assert app.config["DEFAULT_PAGE_SIZE"] == 25
        assert app.config["ENGINE_READ_ONLY"] is False
        assert app.config["ENGINE_DATABASE"] == "/srv/data/w.duckdb"

    def test_default_page_size_used_by_api(self, settings_db: str, engine_db: str) -> None:
        app = create_app(
            {"DATABASE_PATH": settings_db, "ENGINE_DATABASE": engine_db, "DEFAULT_PAGE_SIZE": 10}
        )
        body = app.test_client().post("/api/query", json={"sql": "SELECT * FROM sales"}).get_json()
        assert body["pageSize"] == 10
        assert len(body["data"]) == 10


def test_bad_bool_rejected() -> None:
    entry = resolve_entry("server.debug")
    assert entry is not None
    with pytest.raises(ValueError):
        parse_value(entry, "maybe")

"""Settings registry.

Each setting is declared once with its dotted key, value type, default and the
``app.config`` name it is loaded into.  Stored values live in the
``app_setting`` table as text and are parsed through the registry.
"""

from dataclasses import dataclass
from enum import Enum

Value = str | int | bool | list[str]


class ConfigType(Enum):
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    STRING_LIST = "string_list"


@dataclass(frozen=True, slots=True)
class ConfigEntry:
    key: str
    type: ConfigType
    default: Value
    description: str
    app_key: str


_S, _I, _B, _L = ConfigType.STRING, ConfigType.INT, ConfigType.BOOL, ConfigType.STRING_LIST

REGISTRY: list[ConfigEntry] = [
    # server
    ConfigEntry("server.host", _S, "0.0.0.0", "Bind address for gunicorn", "HOST"),
    ConfigEntry("server.port", _I, 8080, "Port for gunicorn", "PORT"),
    ConfigEntry("server.dev_host", _S, "127.0.0.1", "Bind address with --dev", "DEV_HOST"),
    ConfigEntry("server.dev_port", _I, 8080, "Port with --dev", "DEV_PORT"),
    ConfigEntry("server.debug", _B, False, "Flask debug mode", "DEBUG"),
    ConfigEntry(
        "server.cors_origins",
        _L,
        ["http://localhost:3000"],
        "Browser origins allowed to call the API",
        "CORS_ORIGINS",
    ),
    # engine
    ConfigEntry(
        "engine.database",
        _S,
        "warehouse.duckdb",
        "DuckDB file; relative paths resolve against the instance folder",
        "ENGINE_DATABASE",
    ),
    ConfigEntry("engine.read_only", _B, True, "Open DuckDB read-only", "ENGINE_READ_ONLY"),
    # query
    ConfigEntry(
        "query.default_page_size",
        _I,
        50,
        "Page size for requests that omit one",
        "DEFAULT_PAGE_SIZE",
    ),
    ConfigEntry("query.max_page_size", _I, 1000, "Largest page served", "MAX_PAGE_SIZE"),
    # export
    ConfigEntry("export.max_rows", _I, 10000, "Row cap for full exports", "EXPORT_MAX_ROWS"),
    # proxy (hop counts passed to ProxyFix)
    ConfigEntry("proxy.x_forwarded_for", _I, 0, "X-Forwarded-For hops", "PROXY_X_FORWARDED_FOR"),
    ConfigEntry(
        "proxy.x_forwarded_proto", _I, 0, "X-Forwarded-Proto hops", "PROXY_X_FORWARDED_PROTO"
    ),
    ConfigEntry(
        "proxy.x_forwarded_host", _I, 0, "X-Forwarded-Host hops", "PROXY_X_FORWARDED_HOST"
    ),
    ConfigEntry(
        "proxy.x_forwarded_prefix", _I, 0, "X-Forwarded-Prefix hops", "PROXY_X_FORWARDED_PREFIX"
    ),
]

_BY_KEY: dict[str, ConfigEntry] = {e.key: e for e in REGISTRY}

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off", "")


def resolve_entry(key: str) -> ConfigEntry | None:
    return _BY_KEY.get(key)


def parse_value(entry: ConfigEntry, raw: str) -> Value:
    """Parse stored text into the entry's type; raises ValueError on bad input."""
    match entry.type:
        case ConfigType.INT:
            return int(raw)
        case ConfigType.BOOL:
            lowered = raw.strip().lower()
            if lowered not in _TRUE + _FALSE:
                raise ValueError(f"expected a boolean, got {raw!r}")
            return lowered in _TRUE
        case ConfigType.STRING_LIST:
            return [item.strip() for item in raw.split(",") if item.strip()]
        case _:
            return raw


def serialize_value(entry: ConfigEntry, value: Value) -> str:
    if entry.type is ConfigType.BOOL:
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(value)
    return str(value)

"""QueryDesk - interactive query building and reporting over DuckDB."""

import logging
import os
from pathlib import Path
from typing import Any

import apsw
from flask import Flask, jsonify, request
from flask import Response as FlaskResponse

from querydesk.config import REGISTRY, parse_value

log = logging.getLogger(__name__)


def _settings_path() -> tuple[str, Path]:
    """Return (database path, instance folder) from the environment."""
    explicit = os.environ.get("QUERYDESK_DB")
    if explicit:
        return explicit, Path(explicit).parent

    if "QUERYDESK_ROOT" in os.environ:
        root = Path(os.environ["QUERYDESK_ROOT"])
    else:
        checkout = Path(__file__).parent.parent.parent
        root = checkout if (checkout / "src" / "querydesk").is_dir() else Path.cwd()
    instance = root / "instance"
    return str(instance / "querydesk.sqlite3"), instance


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    """Application factory for QueryDesk."""
    db_path, instance_path = _settings_path()
    instance_path.mkdir(parents=True, exist_ok=True)

    app = Flask(__name__, instance_path=str(instance_path), instance_relative_config=True)
    app.config["DATABASE_PATH"] = db_path
    app.config.update({entry.app_key: entry.default for entry in REGISTRY})

    if test_config is None:
        _load_settings(app)
    else:
        app.config.from_mapping(test_config)

    engine_db = str(app.config["ENGINE_DATABASE"])
    if engine_db != ":memory:" and not Path(engine_db).is_absolute():
        app.config["ENGINE_DATABASE"] = str(instance_path / engine_db)

    # Row dicts are serialized in column order
    app.json.sort_keys = False  # type: ignore[attr-defined]

    from querydesk.db import close_db

    app.teardown_appcontext(close_db)
    app.after_request(_cors_headers)

    from querydesk.blueprints import api

    app.register_blueprint(api.bp)

    @app.route("/")
    def index() -> FlaskResponse:
        return jsonify({"name": "querydesk", "status": "ok"})

    return app


def _cors_headers(response: FlaskResponse) -> FlaskResponse:
    from flask import current_app

    origin = request.headers.get("Origin")
    allowed = current_app.config.get("CORS_ORIGINS") or []
    if origin and (origin in allowed or "*" in allowed):
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Origin, Content-Type, Accept"
    return response


def _load_settings(app: Flask) -> None:
    """Overlay values stored in app_setting onto the registry defaults."""
    try:
        conn = apsw.Connection(app.config["DATABASE_PATH"], flags=apsw.SQLITE_OPEN_READONLY)
    except apsw.CantOpenError:
        log.info("No settings database at %s, using defaults", app.config["DATABASE_PATH"])
        return

    try:
        stored = dict(conn.execute("SELECT key, value FROM app_setting").fetchall())
    except apsw.SQLError:
        stored = {}
    finally:
        conn.close()

    for entry in REGISTRY:
        raw = stored.get(entry.key)
        if raw is not None:
            app.config[entry.app_key] = parse_value(entry, str(raw))

    hops = {
        name: int(app.config.get(f"PROXY_X_FORWARDED_{name.upper()}", 0))
        for name in ("for", "proto", "host", "prefix")
    }
    if any(hops.values()):
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
            app.wsgi_app,
            x_for=hops["for"],
            x_proto=hops["proto"],
            x_host=hops["host"],
            x_prefix=hops["prefix"],
        )

"""APSW access to the settings and template store.

Two connection flavours share one file: a per-request connection held on
``flask.g`` for the API, and a module-level one for CLI commands that run
outside an app context.
"""

import os
from collections.abc import Generator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path

import apsw

DEFAULT_DB_NAME = "querydesk.sqlite3"

_standalone_db: apsw.Connection | None = None


def get_db_path() -> str:
    """Resolve the settings database path.

    ``QUERYDESK_DB`` wins, then the running app's ``DATABASE_PATH``, then
    ``instance/querydesk.sqlite3`` beside the source checkout.
    """
    from_env = os.environ.get("QUERYDESK_DB")
    if from_env:
        return from_env

    try:
        from flask import current_app

        return current_app.config["DATABASE_PATH"]
    except (RuntimeError, KeyError):
        pass

    return str(Path(__file__).parent.parent.parent / "instance" / DEFAULT_DB_NAME)


def _open(db_path: str) -> apsw.Connection:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = apsw.Connection(db_path)
    conn.execute("PRAGMA busy_timeout = 5000;")
    conn.execute("PRAGMA journal_mode = WAL;")
    return conn


@contextmanager
def _atomic(conn: apsw.Connection) -> Generator[apsw.Cursor]:
    cursor = conn.cursor()
    cursor.execute("BEGIN IMMEDIATE;")
    try:
        yield cursor
        cursor.execute("COMMIT;")
    except Exception:
        cursor.execute("ROLLBACK;")
        raise


# ---------------------------------------------------------------------------
# Request-scoped connection
# ---------------------------------------------------------------------------


def get_db() -> apsw.Connection:
    from flask import g

    if "db" not in g:
        g.db = _open(get_db_path())
    return g.db


def close_db(e: BaseException | None = None) -> None:
    """Teardown hook: release the request's connection, if one was opened."""
    from flask import g

    conn = g.pop("db", None)
    if conn is not None:
        conn.close()


def transaction() -> AbstractContextManager[apsw.Cursor]:
    """Run a block in an immediate transaction on the request connection.

    Commits when the block completes, rolls back and re-raises otherwise.
    """
    return _atomic(get_db())


# ---------------------------------------------------------------------------
# Standalone connection (CLI)
# ---------------------------------------------------------------------------


def get_standalone_db() -> apsw.Connection:
    global _standalone_db
    if _standalone_db is None:
        _standalone_db = _open(get_db_path())
    return _standalone_db


def close_standalone_db() -> None:
    global _standalone_db
    if _standalone_db is not None:
        _standalone_db.close()
        _standalone_db = None


def standalone_transaction() -> AbstractContextManager[apsw.Cursor]:
    return _atomic(get_standalone_db())


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def init_db_at(db_path: str) -> None:
    """Create any missing tables at ``db_path``; safe to run repeatedly."""
    conn = _open(db_path)
    try:
        schema = (Path(__file__).parent / "schema.sql").read_text()
        for _ in conn.execute(schema):
            pass
    finally:
        conn.close()

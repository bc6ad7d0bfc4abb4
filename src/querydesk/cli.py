"""CLI entry point for querydesk-admin."""

import json
import os
import stat
import sys
from datetime import UTC, datetime
from typing import Any, NoReturn

import click

from querydesk.client.backends.local import LocalBackend
from querydesk.client.session import QuerySession
from querydesk.config import (
    REGISTRY,
    parse_value,
    resolve_entry,
    serialize_value,
)
from querydesk.db import (
    close_standalone_db,
    get_db_path,
    get_standalone_db,
    init_db_at,
    standalone_transaction,
)
from querydesk.errors import QueryDeskError
from querydesk.models.filter import DataType, Filter, parse_operator
from querydesk.models.query_request import DEFAULT_PAGE_SIZE, PAGE_SIZES
from querydesk.services.builder_service import Mode
from querydesk.services.export_service import to_csv, to_json

# ---------------------------------------------------------------------------
# Settings table access (standalone DB, no Flask)
# ---------------------------------------------------------------------------


def _stored_value(key: str) -> str | None:
    row = get_standalone_db().execute(
        "SELECT value FROM app_setting WHERE key = ?", (key,)
    ).fetchone()
    return str(row[0]) if row else None


def _stored_values() -> dict[str, str]:
    rows = get_standalone_db().execute(
        "SELECT key, value FROM app_setting ORDER BY key"
    ).fetchall()
    return {str(r[0]): str(r[1]) for r in rows}


def _store_value(key: str, value: str) -> None:
    with standalone_transaction() as cursor:
        cursor.execute(
            "INSERT INTO app_setting (key, value, description) VALUES (?, ?, '') "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )


def _display(value: str | int | bool | list[str]) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(value) if value else "(empty)"
    return str(value) if value != "" else "(empty)"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@click.group()
def main() -> None:
    """QueryDesk administration tool."""


# ---- config group --------------------------------------------------------


@main.group()
def config() -> None:
    """View and manage configuration settings."""


@config.command("list")
def config_list() -> None:
    """Show all settings with their effective values."""
    stored = _stored_values()

    section = ""
    for entry in REGISTRY:
        group = entry.key.split(".")[0]
        if group != section:
            if section:
                click.echo()
            click.echo(click.style(f"[{group}]", bold=True))
            section = group

        raw = stored.get(entry.key)
        source = "db" if raw is not None else "default"
        shown = raw if raw is not None else serialize_value(entry, entry.default)

        tag = click.style(f"[{source}]", fg="cyan" if source == "db" else "yellow")
        click.echo(f"  {entry.key} = {shown or '(empty)'}  {tag}")
        click.echo(click.style(f"    {entry.description}", dim=True))

    close_standalone_db()


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Get the effective value of a setting."""
    entry = resolve_entry(key)
    if entry is None:
        click.echo(f"Unknown setting: {key}", err=True)
        sys.exit(1)

    raw = _stored_value(key)
    value = parse_value(entry, raw) if raw is not None else entry.default
    click.echo(_display(value))
    close_standalone_db()


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set a configuration value in the database."""
    entry = resolve_entry(key)
    if entry is None:
        click.echo(f"Unknown setting: {key}", err=True)
        sys.exit(1)

    try:
        parse_value(entry, value)
    except (ValueError, TypeError) as exc:
        click.echo(f"Invalid value for {key} ({entry.type.value}): {exc}", err=True)
        sys.exit(1)

    _store_value(key, value)
    click.echo(f"{key} = {value}")
    close_standalone_db()


@config.command("export")
@click.argument("output_file", type=click.Path())
def config_export(output_file: str) -> None:
    """Export all settings as a shell script of querydesk-admin calls."""
    stored = _stored_values()
    lines = [
        "#!/bin/bash",
        "# QueryDesk configuration export",
        f"# Generated: {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')}",
        "",
    ]

    for entry in REGISTRY:
        raw = stored.get(entry.key)
        if raw is not None:
            lines.append(f"querydesk-admin config set {entry.key} '{raw}'")
        else:
            default = serialize_value(entry, entry.default)
            lines.append(f"# querydesk-admin config set {entry.key} '{default}'  (default)")

    with open(output_file, "w") as f:
        f.write("\n".join(lines) + "\n")
    mode = os.stat(output_file).st_mode
    os.chmod(output_file, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    click.echo(f"Exported {len(REGISTRY)} settings to {output_file}")
    close_standalone_db()


# ---- admin commands ------------------------------------------------------


@main.command("init-db")
def init_db_command() -> None:
    """Initialize the settings database schema."""
    db_path = get_db_path()
    init_db_at(db_path)
    click.echo("Database initialized.")


def _backend(engine: str | None) -> LocalBackend:
    return LocalBackend(get_db_path(), engine)


def _fail(exc: QueryDeskError) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


@main.command("tables")
@click.option("--engine", default=None, help="DuckDB file (overrides engine.database)")
def tables_command(engine: str | None) -> None:
    """List tables and their columns."""
    try:
        tables = _backend(engine).list_tables()
    except QueryDeskError as exc:
        _fail(exc)

    if not tables:
        click.echo("No tables found.")
        return
    for table in tables:
        click.echo(click.style(table.name, bold=True))
        for column in table.columns:
            null = "" if column.nullable else " not null"
            click.echo(f"  {column.name}  {column.type}{null}")


def parse_filter_option(raw: str) -> Filter:
    """Parse ``field:operator:value[:type]`` into a Filter.

    The value may itself contain colons (timestamps); a trailing segment is
    only read as the type when it names one.
    """
    parts = raw.split(":")
    if len(parts) < 3:
        raise click.BadParameter(f"expected field:operator:value[:type], got {raw!r}")

    field, operator = parts[0], parts[1]
    rest = parts[2:]
    data_type = DataType.TEXT
    if len(rest) > 1 and rest[-1].lower() in {t.value for t in DataType}:
        data_type = DataType(rest[-1].lower())
        rest = rest[:-1]

    try:
        return Filter(field, parse_operator(operator), ":".join(rest), data_type)
    except QueryDeskError as exc:
        raise click.BadParameter(str(exc)) from None


def _render_table(columns: list[str], rows: list[dict[str, Any]]) -> str:
    cells = [[("" if r.get(c) is None else str(r.get(c))) for c in columns] for r in rows]
    widths = [max([len(c)] + [len(row[i]) for row in cells]) for i, c in enumerate(columns)]
    lines = ["  ".join(c.ljust(w) for c, w in zip(columns, widths))]
    lines.append("  ".join("-" * w for w in widths))
    for row in cells:
        lines.append("  ".join(v.ljust(w) for v, w in zip(row, widths)))
    return "\n".join(lines)


@main.command("query")
@click.option("--engine", default=None, help="DuckDB file (overrides engine.database)")
@click.option("--table", "table_name", default=None, help="Table to select from")
@click.option("--column", "columns", multiple=True, help="Column to select (repeatable)")
@click.option(
    "--filter", "filters", multiple=True, help="Filter as field:operator:value[:type] (repeatable)"
)
@click.option("--sql", default=None, help="Raw SQL (takes precedence over --table)")
@click.option("--page", default=1, help="Page number")
@click.option(
    "--page-size",
    default=str(DEFAULT_PAGE_SIZE),
    type=click.Choice([str(s) for s in PAGE_SIZES]),
    help="Rows per page",
)
@click.option("--sort-by", default=None, help="Column to order by")
@click.option("--sort-order", default="asc", type=click.Choice(["asc", "desc"]))
@click.option("--search", default=None, help="Case-insensitive search over all columns")
@click.option(
    "--format", "fmt", default="table", type=click.Choice(["table", "csv", "json"])
)
def query_command(
    engine: str | None,
    table_name: str | None,
    columns: tuple[str, ...],
    filters: tuple[str, ...],
    sql: str | None,
    page: int,
    page_size: str,
    sort_by: str | None,
    sort_order: str,
    search: str | None,
    fmt: str,
) -> None:
    """Run one page of a query and print it."""
    parsed = [parse_filter_option(f) for f in filters]
    session = QuerySession(_backend(engine))

    try:
        if sql:
            session.builder.set_mode(Mode.RAW_SQL)
            session.builder.set_sql(sql)
        else:
            if not table_name:
                raise click.UsageError("Provide --table or --sql")
            session.load_tables()
            session.select_table(table_name)
            if columns:
                session.builder.set_columns(list(columns))
            else:
                session.builder.select_all_columns()
            for f in parsed:
                session.builder.add_filter(f)

        session.builder.set_page_size(int(page_size))
        session.builder.set_page(page)
        if sort_by:
            session.builder.set_sort(sort_by, sort_order)
        if search:
            session.builder.set_search(search)

        view = session.run()
    except QueryDeskError as exc:
        _fail(exc)

    assert view is not None
    if view.is_empty:
        click.echo("No results.", err=True)
        return

    match fmt:
        case "csv":
            click.echo(to_csv(view.rows))
        case "json":
            click.echo(to_json(view.rows))
        case _:
            click.echo(_render_table(view.columns(), view.rows))
            click.echo(click.style(view.summary(), dim=True))


# ---- templates group -----------------------------------------------------


@main.group()
def templates() -> None:
    """View and manage saved report templates."""


@templates.command("list")
def templates_list() -> None:
    """List saved templates, most recently updated first."""
    items = _backend(None).list_templates()
    if not items:
        click.echo("No templates saved.")
        return
    for t in items:
        click.echo(f"{t.id:>4}  {t.name}  {click.style(t.updated_at or '', dim=True)}")


@templates.command("show")
@click.argument("template_id", type=int)
def templates_show(template_id: int) -> None:
    """Show one template as JSON."""
    for t in _backend(None).list_templates():
        if t.id == template_id:
            click.echo(json.dumps(t.to_dict(), indent=2))
            return
    click.echo(f"Template {template_id} not found", err=True)
    sys.exit(1)


@templates.command("delete")
@click.argument("template_id", type=int)
def templates_delete(template_id: int) -> None:
    """Delete a saved template."""
    try:
        _backend(None).delete_template(template_id)
    except QueryDeskError as exc:
        _fail(exc)
    click.echo(f"Deleted template {template_id}.")

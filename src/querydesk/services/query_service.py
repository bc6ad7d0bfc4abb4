"""Query service for DuckDB introspection, execution and result handling."""

import logging
import math
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import duckdb

from querydesk.errors import NoTableSelected, UnknownField, ValidationError
from querydesk.models.filter import DataType, Operator
from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage
from querydesk.models.table import ColumnInfo, TableInfo
from querydesk.services.filter_service import validate

log = logging.getLogger(__name__)


@dataclass
class QueryResult:
    columns: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50
    duration_ms: int = 0
    executed_sql: str = ""
    error: str | None = None

    def to_page(self) -> ResultPage:
        return ResultPage(
            rows=self.rows,
            total=self.total,
            page=self.page,
            page_size=self.page_size,
        )


@contextmanager
def engine_connection(
    database: str,
    read_only: bool = True,
) -> Generator[duckdb.DuckDBPyConnection]:
    """Open a DuckDB connection for the duration of one request."""
    if database == ":memory:" or not Path(database).exists():
        read_only = False
    conn = duckdb.connect(database, read_only=read_only)
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Schema introspection
# ---------------------------------------------------------------------------

_COLUMNS_SQL = (
    "SELECT table_name, column_name, data_type, is_nullable "
    "FROM information_schema.columns WHERE table_schema = 'main' "
)


def list_tables(conn: duckdb.DuckDBPyConnection) -> list[TableInfo]:
    """List every table and view with its columns in ordinal order."""
    names = conn.execute(
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = 'main' ORDER BY table_name"
    ).fetchall()
    rows = conn.execute(_COLUMNS_SQL + "ORDER BY table_name, ordinal_position").fetchall()

    columns: dict[str, list[ColumnInfo]] = {str(n[0]): [] for n in names}
    for table_name, column_name, data_type, is_nullable in rows:
        columns.setdefault(str(table_name), []).append(
            ColumnInfo(
                name=str(column_name),
                type=str(data_type),
                nullable=str(is_nullable).upper() == "YES",
            )
        )
    return [TableInfo(name=name, columns=tuple(cols)) for name, cols in columns.items()]


def get_table(conn: duckdb.DuckDBPyConnection, name: str) -> TableInfo | None:
    rows = conn.execute(
        _COLUMNS_SQL + "AND table_name = ? ORDER BY ordinal_position",
        [name],
    ).fetchall()
    if not rows:
        return None
    return TableInfo(
        name=name,
        columns=tuple(
            ColumnInfo(name=str(r[1]), type=str(r[2]), nullable=str(r[3]).upper() == "YES")
            for r in rows
        ),
    )


# ---------------------------------------------------------------------------
# SQL generation
# ---------------------------------------------------------------------------


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _strip_sql(sql: str) -> str:
    return sql.strip().rstrip(";").strip()


def build_base_query(
    request: QueryRequest,
    table: TableInfo | None,
) -> tuple[str, list[Any]]:
    """Build the unpaginated query and its bind parameters.

    Raw SQL is passed through untouched apart from a trailing semicolon.
    Builder requests are rendered from quoted identifiers of ``table`` and
    bound filter values; unknown columns raise ValidationError.
    """
    if request.is_raw_sql:
        return _strip_sql(request.sql or ""), []

    if table is None:
        raise NoTableSelected("Table name is required")

    known = table.column_names
    for col in request.columns:
        if col not in known:
            raise UnknownField(f"Unknown column: {col}")

    columns = request.columns or tuple(known)
    sql = f"SELECT {', '.join(quote_ident(c) for c in columns)} FROM {quote_ident(table.name)}"

    conditions: list[str] = []
    params: list[Any] = []
    for raw_filter in request.filters:
        f = validate(raw_filter, known)
        target = quote_ident(f.field)
        value = _bind_value(f.value, f.type)
        match f.operator:
            case Operator.LIKE:
                conditions.append(f"{target} LIKE ?")
                params.append(f"%{value}%")
            case Operator.IN:
                placeholders = ", ".join("?" for _ in value)
                conditions.append(f"{target} IN ({placeholders})")
                params.extend(value)
            case Operator.BETWEEN:
                conditions.append(f"{target} BETWEEN ? AND ?")
                params.extend(value)
            case _:
                conditions.append(f"{target} {f.operator.value} ?")
                params.append(value)

    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    return sql, params


def _bind_value(value: Any, data_type: DataType) -> Any:
    """Turn normalized ISO date strings into date objects for binding."""
    if data_type is not DataType.DATE:
        return value
    if isinstance(value, list):
        return [_bind_value(v, data_type) for v in value]
    if "T" in value:
        return datetime.fromisoformat(value)
    return date.fromisoformat(value)


def _search_clause(columns: list[str], search: str | None) -> tuple[str, list[Any]]:
    """Filter across all columns using CAST to VARCHAR."""
    if not search or not columns:
        return "", []
    clauses = [f"CAST({quote_ident(col)} AS VARCHAR) ILIKE ?" for col in columns]
    return " WHERE " + " OR ".join(clauses), [f"%{search}%"] * len(columns)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def to_jsonable(value: Any) -> Any:
    """Convert an engine value to a JSON-safe scalar."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, (timedelta, uuid.UUID)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    return str(value)


def _resolve_table(
    conn: duckdb.DuckDBPyConnection,
    request: QueryRequest,
) -> TableInfo | None:
    if request.is_raw_sql:
        return None
    if not request.table_name:
        raise NoTableSelected("Table name is required")
    table = get_table(conn, request.table_name)
    if table is None:
        raise ValidationError(f"Unknown table: {request.table_name}")
    return table


def _run(
    conn: duckdb.DuckDBPyConnection,
    request: QueryRequest,
    result: QueryResult,
    limit: int,
    offset: int,
    count: bool,
) -> QueryResult:
    try:
        table = _resolve_table(conn, request)
        base_sql, params = build_base_query(request, table)
    except ValidationError as e:
        result.error = str(e)
        return result

    start_time = time.monotonic()
    try:
        rel = conn.execute(f"SELECT * FROM ({base_sql}) AS q LIMIT 0", params)
        columns = [desc[0] for desc in rel.description]
        result.columns = columns
        result.types = [str(desc[1]) for desc in rel.description]

        where, where_params = _search_clause(columns, request.search)
        bound = params + where_params

        order = ""
        if request.sort_by:
            if request.sort_by not in columns:
                result.error = f"Unknown sort column: {request.sort_by}"
                return result
            direction = "DESC" if request.sort_order == "desc" else "ASC"
            order = f" ORDER BY {quote_ident(request.sort_by)} {direction} NULLS LAST"

        sql = (
            f"SELECT * FROM ({base_sql}) AS q{where}{order} "
            f"LIMIT {int(limit)} OFFSET {int(offset)}"
        )
        result.executed_sql = sql
        fetched = conn.execute(sql, bound).fetchall()
        result.rows = [
            {col: to_jsonable(value) for col, value in zip(columns, row, strict=False)}
            for row in fetched
        ]

        if count:
            count_row = conn.execute(
                f"SELECT COUNT(*) FROM ({base_sql}) AS q{where}", bound
            ).fetchone()
            result.total = int(count_row[0]) if count_row else 0
        else:
            result.total = len(result.rows)
    except duckdb.Error as e:
        result.error = f"Query error: {e}"
        return result

    result.duration_ms = int((time.monotonic() - start_time) * 1000)
    log.info(
        "Query returned %d of %d rows in %dms",
        len(result.rows),
        result.total,
        result.duration_ms,
    )
    return result


def execute_query(
    conn: duckdb.DuckDBPyConnection,
    request: QueryRequest,
    max_page_size: int = 1000,
) -> QueryResult:
    """Execute one page of a query request.

    Errors (validation or engine) are reported on ``QueryResult.error``.
    """
    page_size = max(1, min(request.page_size, max_page_size))
    page = max(1, request.page)
    result = QueryResult(page=page, page_size=page_size)
    return _run(conn, request, result, limit=page_size, offset=(page - 1) * page_size, count=True)


def fetch_all(
    conn: duckdb.DuckDBPyConnection,
    request: QueryRequest,
    limit: int = 10000,
) -> QueryResult:
    """Execute a query without pagination, capped at ``limit`` rows."""
    result = QueryResult(page=1, page_size=max(1, limit))
    return _run(conn, request, result, limit=limit, offset=0, count=False)

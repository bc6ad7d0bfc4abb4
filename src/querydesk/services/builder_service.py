"""Query builder: structured and raw-SQL query drafting.

The builder keeps one shared draft and a mode tag.  Switching between
builder mode and raw-SQL mode never discards either side of the draft, so
toggling back restores the previous selection or SQL text.  Every edit
replaces the state wholesale; ``build`` and ``to_template`` are pure and
leave the state untouched when they raise.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from querydesk.errors import (
    EmptySql,
    EmptyTemplate,
    InvalidPageSize,
    InvalidSort,
    MissingName,
    NoColumnsSelected,
    NoSuchFilter,
    NoTableSelected,
)
from querydesk.models.filter import Filter
from querydesk.models.query_request import DEFAULT_PAGE_SIZE, PAGE_SIZES, QueryRequest
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate
from querydesk.services.filter_service import validate

log = logging.getLogger(__name__)


class Mode(Enum):
    BUILDER = "builder"
    RAW_SQL = "raw_sql"


@dataclass(frozen=True, slots=True)
class QueryDraft:
    table: TableInfo | None = None
    columns: tuple[str, ...] = ()
    filters: tuple[Filter, ...] = ()
    sql: str = ""
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: str | None = None
    sort_order: str = "asc"
    search: str | None = None

    @property
    def table_name(self) -> str | None:
        return self.table.name if self.table else None


@dataclass(frozen=True, slots=True)
class BuilderState:
    mode: Mode = Mode.BUILDER
    draft: QueryDraft = QueryDraft()


def synthesize_sql(table_name: str, columns: tuple[str, ...] | list[str]) -> str:
    """Render the plain SELECT statement stored for a builder-mode template."""
    return f"SELECT {', '.join(columns)} FROM {table_name}"


class QueryBuilder:
    """Holds the state of one query being drafted."""

    def __init__(self, state: BuilderState | None = None) -> None:
        self.state = state or BuilderState()

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def draft(self) -> QueryDraft:
        return self.state.draft

    def _edit(self, **changes: Any) -> BuilderState:
        self.state = replace(self.state, draft=replace(self.state.draft, **changes))
        return self.state

    # -- mode --------------------------------------------------------------

    def set_mode(self, mode: Mode) -> BuilderState:
        self.state = replace(self.state, mode=mode)
        return self.state

    def toggle_mode(self) -> BuilderState:
        if self.state.mode is Mode.BUILDER:
            return self.set_mode(Mode.RAW_SQL)
        return self.set_mode(Mode.BUILDER)

    # -- table and columns -------------------------------------------------

    def select_table(self, table: TableInfo) -> BuilderState:
        """Make ``table`` the active table.

        Choosing a different table drops columns, filters and sort, which
        would otherwise reference fields the new table does not have.
        """
        current = self.state.draft.table
        if current is not None and current.name == table.name:
            return self._edit(table=table)
        return self._edit(table=table, columns=(), filters=(), sort_by=None)

    def set_columns(self, columns: list[str] | tuple[str, ...]) -> BuilderState:
        unique: list[str] = []
        for col in columns:
            if col not in unique:
                unique.append(col)
        sort_by = self.state.draft.sort_by
        if sort_by not in unique:
            sort_by = None
        return self._edit(columns=tuple(unique), sort_by=sort_by)

    def toggle_column(self, name: str) -> BuilderState:
        columns = list(self.state.draft.columns)
        if name in columns:
            columns.remove(name)
        else:
            columns.append(name)
        return self.set_columns(columns)

    def select_all_columns(self) -> BuilderState:
        table = self.state.draft.table
        if table is None:
            raise NoTableSelected("Select a table first")
        return self.set_columns(table.column_names)

    def clear_columns(self) -> BuilderState:
        return self._edit(columns=(), sort_by=None)

    # -- filters -----------------------------------------------------------

    def _known_fields(self) -> list[str] | None:
        table = self.state.draft.table
        if table is None or not table.columns:
            return None
        return table.column_names

    @staticmethod
    def _check_index(filters: list[Filter], index: int) -> None:
        if not 0 <= index < len(filters):
            raise NoSuchFilter(f"No filter at position {index}")

    def add_filter(self, filter: Filter) -> BuilderState:
        """Validate ``filter`` and append its normalized form."""
        normalized = validate(filter, self._known_fields())
        return self._edit(filters=self.state.draft.filters + (normalized,))

    def update_filter(self, index: int, **changes: Any) -> BuilderState:
        """Change one filter in place; the result is validated on ``build``."""
        filters = list(self.state.draft.filters)
        self._check_index(filters, index)
        filters[index] = replace(filters[index], **changes)
        return self._edit(filters=tuple(filters))

    def remove_filter(self, index: int) -> BuilderState:
        filters = list(self.state.draft.filters)
        self._check_index(filters, index)
        del filters[index]
        return self._edit(filters=tuple(filters))

    def set_filters(self, filters: list[Filter] | tuple[Filter, ...]) -> BuilderState:
        return self._edit(filters=tuple(filters))

    # -- raw sql, paging, sorting ------------------------------------------

    def set_sql(self, sql: str) -> BuilderState:
        return self._edit(sql=sql)

    def set_page(self, page: int) -> BuilderState:
        return self._edit(page=max(1, int(page)))

    def set_page_size(self, page_size: int) -> BuilderState:
        if page_size not in PAGE_SIZES:
            allowed = ", ".join(str(s) for s in PAGE_SIZES)
            raise InvalidPageSize(f"Page size must be one of {allowed}")
        return self._edit(page_size=page_size, page=1)

    def set_sort(self, sort_by: str | None, sort_order: str = "asc") -> BuilderState:
        order = sort_order.lower()
        if order not in ("asc", "desc"):
            raise InvalidSort(f"Unknown sort order: {sort_order}")
        return self._edit(sort_by=sort_by or None, sort_order=order)

    def set_search(self, search: str | None) -> BuilderState:
        return self._edit(search=search or None, page=1)

    # -- outputs -----------------------------------------------------------

    def build(self) -> QueryRequest:
        """Assemble the current draft into a QueryRequest.

        Raises a BuildError (or FilterError) when the draft is incomplete.
        """
        draft = self.state.draft

        if self.state.mode is Mode.RAW_SQL:
            if not draft.sql.strip():
                raise EmptySql("Enter a SQL query")
            sql: str | None = draft.sql
            filters = draft.filters
        else:
            if not draft.columns:
                raise NoColumnsSelected("Please select at least one column")
            if draft.table is None:
                raise NoTableSelected("Select a table first")
            known = self._known_fields()
            filters = tuple(validate(f, known) for f in draft.filters)
            if draft.sort_by and draft.sort_by not in draft.columns:
                raise InvalidSort(f"Sort column '{draft.sort_by}' is not selected")
            sql = None

        return QueryRequest(
            columns=draft.columns,
            filters=filters,
            table_name=draft.table_name,
            sql=sql,
            page=draft.page,
            page_size=draft.page_size,
            sort_by=draft.sort_by,
            sort_order=draft.sort_order,
            search=draft.search,
        )

    def load_template(self, template: ReportTemplate) -> BuilderState:
        """Switch to raw-SQL mode with the template's SQL.

        Columns and filters are replaced (not merged) when the template has
        them.  Loading the same template twice yields the same state.
        """
        changes: dict[str, Any] = {"sql": template.sql}
        if template.columns is not None:
            changes["columns"] = tuple(template.columns)
        if template.filters is not None:
            changes["filters"] = tuple(template.filters)
        self.state = BuilderState(mode=Mode.RAW_SQL, draft=replace(self.state.draft, **changes))
        log.debug("Loaded template %r", template.name)
        return self.state

    def to_template(self, name: str) -> ReportTemplate:
        """Capture the draft as an unsaved template named ``name``."""
        draft = self.state.draft
        has_sql = bool(draft.sql.strip())

        if self.state.mode is Mode.RAW_SQL and has_sql:
            sql = draft.sql
        elif draft.columns and draft.table is not None:
            sql = synthesize_sql(draft.table.name, draft.columns)
        elif has_sql:
            sql = draft.sql
        else:
            raise EmptyTemplate("Select columns or enter a SQL query to save a template")

        if not name or not name.strip():
            raise MissingName("Template name is required")

        return ReportTemplate(
            name=name.strip(),
            sql=sql,
            columns=list(draft.columns),
            filters=list(draft.filters),
        )

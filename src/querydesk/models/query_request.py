"""Query request model exchanged with the execution engine."""

from dataclasses import dataclass
from typing import Any

from querydesk.models.filter import Filter

PAGE_SIZES = (10, 25, 50, 100)
DEFAULT_PAGE_SIZE = 50
SORT_ORDERS = ("asc", "desc")


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """One canonical query request.

    When ``sql`` is set it is the effective query source; ``table_name``,
    ``columns`` and ``filters`` are then advisory and only carried so that a
    template saved from raw SQL keeps the structured selection.
    """

    columns: tuple[str, ...] = ()
    filters: tuple[Filter, ...] = ()
    table_name: str | None = None
    sql: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: str | None = None
    sort_order: str = "asc"
    search: str | None = None

    @property
    def is_raw_sql(self) -> bool:
        return bool(self.sql and self.sql.strip())

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "columns": list(self.columns),
            "filters": [f.to_dict() for f in self.filters],
            "page": self.page,
            "pageSize": self.page_size,
            "sortOrder": self.sort_order,
        }
        if self.sql is not None:
            data["sql"] = self.sql
        if self.table_name:
            data["tableName"] = self.table_name
        if self.sort_by:
            data["sortBy"] = self.sort_by
        if self.search:
            data["search"] = self.search
        return data

    @staticmethod
    def from_dict(
        data: dict[str, Any],
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> "QueryRequest":
        """Decode a wire request, filling the engine defaults.

        A non-positive page becomes 1, a non-positive page size becomes
        ``default_page_size`` and an unknown sort order becomes ascending.
        """
        page = as_int(data.get("page"))
        page_size = as_int(data.get("pageSize"))
        sort_order = str(data.get("sortOrder") or "asc").lower()

        columns: list[str] = []
        for col in data.get("columns") or []:
            if col not in columns:
                columns.append(str(col))

        return QueryRequest(
            columns=tuple(columns),
            filters=tuple(Filter.from_dict(f) for f in data.get("filters") or []),
            table_name=data.get("tableName") or None,
            sql=data.get("sql") or None,
            page=page if page > 0 else 1,
            page_size=page_size if page_size > 0 else default_page_size,
            sort_by=data.get("sortBy") or None,
            sort_order=sort_order if sort_order in SORT_ORDERS else "asc",
            search=data.get("search") or None,
        )


def as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0

"""Result page model and the client-local view over it.

A ResultPage is one bounded slice of a larger result set.  ResultView adds
search and sort that run over the rows of the current page only: they never
fetch, and they leave ``total``/``total_pages`` untouched.  A search cannot
find matches that live on other pages; narrowing the whole result set needs a
new request with ``search`` set.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from querydesk.models.query_request import as_int

log = logging.getLogger(__name__)

Row = dict[str, Any]


def compute_total_pages(total: int, page_size: int) -> int:
    """Number of pages for ``total`` rows; at least one, even when empty."""
    if page_size < 1:
        page_size = 1
    return max(1, math.ceil(max(total, 0) / page_size))


@dataclass(frozen=True, slots=True)
class ResultPage:
    rows: list[Row] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 50

    def __post_init__(self) -> None:
        if len(self.rows) > max(self.page_size, 1):
            raise ValueError(
                f"Page holds {len(self.rows)} rows but page size is {self.page_size}"
            )

    @property
    def total_pages(self) -> int:
        return compute_total_pages(self.total, self.page_size)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.rows,
            "total": self.total,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ResultPage":
        """Decode a wire response.

        ``totalPages`` from the wire is ignored and recomputed.  Rows beyond
        the page size are dropped so a page never holds more than one page.
        Non-numeric counts are treated as missing.
        """
        rows = list(data.get("data") or [])
        page_size = max(1, as_int(data.get("pageSize")) or len(rows) or 1)
        if len(rows) > page_size:
            log.warning(
                "Response carried %d rows for page size %d; truncating", len(rows), page_size
            )
            rows = rows[:page_size]
        return ResultPage(
            rows=rows,
            total=max(0, as_int(data.get("total"))),
            page=max(1, as_int(data.get("page"))),
            page_size=page_size,
        )


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (1, str(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value))


class ResultView:
    """Fetch-free operations over one fetched page."""

    def __init__(self, page: ResultPage) -> None:
        self.page = page
        self.search_term = ""
        self.sort_column: str | None = None
        self.sort_direction = "asc"

    # -- metadata ------------------------------------------------------------

    @property
    def rows(self) -> list[Row]:
        return self.page.rows

    @property
    def total(self) -> int:
        return self.page.total

    @property
    def total_pages(self) -> int:
        return self.page.total_pages

    @property
    def is_empty(self) -> bool:
        return not self.page.rows

    def columns(self) -> list[str]:
        """Field names from the first row; empty when the page has no rows."""
        if not self.page.rows:
            return []
        return list(self.page.rows[0].keys())

    # -- local search and sort ----------------------------------------------

    def _matches(self, row: Row, needle: str) -> bool:
        return any(
            needle in str(value).lower() for value in row.values() if value is not None
        )

    def _sorted(self, rows: list[Row]) -> list[Row]:
        column = self.sort_column
        if column is None:
            return list(rows)
        present = [r for r in rows if r.get(column) is not None]
        missing = [r for r in rows if r.get(column) is None]
        ordered = sorted(
            present,
            key=lambda r: _sort_key(r[column]),
            reverse=self.sort_direction == "desc",
        )
        return ordered + missing

    def visible_rows(self) -> list[Row]:
        """Rows of the current page after the active sort and search."""
        rows = self._sorted(self.page.rows)
        if not self.search_term:
            return rows
        needle = self.search_term.lower()
        return [r for r in rows if self._matches(r, needle)]

    def search(self, term: str) -> list[Row]:
        """Case-insensitive substring match over the current page only."""
        self.search_term = term or ""
        return self.visible_rows()

    def sort_page(self, column: str) -> list[Row]:
        """Sort the current page by ``column``.

        Sorting the same column again flips the direction; a new column
        starts ascending.
        """
        if self.sort_column == column and self.sort_direction == "asc":
            self.sort_direction = "desc"
        else:
            self.sort_direction = "asc"
        self.sort_column = column
        return self.visible_rows()

    # -- navigation ----------------------------------------------------------

    def go_to_page(self, n: int) -> int:
        """Clamp a requested page number to ``[1, total_pages]``."""
        return min(max(int(n), 1), self.total_pages)

    @property
    def has_previous(self) -> bool:
        return self.page.page > 1

    @property
    def has_next(self) -> bool:
        return self.page.page < self.total_pages

    @property
    def first_index(self) -> int:
        if self.page.total == 0:
            return 0
        return (self.page.page - 1) * self.page.page_size + 1

    @property
    def last_index(self) -> int:
        return min(self.page.page * self.page.page_size, self.page.total)

    def summary(self) -> str:
        plural = "" if self.page.total == 1 else "s"
        return (
            f"{self.page.total} total row{plural}, showing {len(self.page.rows)} "
            f"(page {self.page.page} of {self.total_pages})"
        )

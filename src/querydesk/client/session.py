"""Interactive query session: builder, backend and the current result view.

Responses are sequenced.  Every request issued through ``begin`` gets a
monotonic sequence number, and ``complete`` only installs a response whose
number is the latest issued, so an older in-flight response can never
overwrite the page of a newer one.
"""

import logging
from dataclasses import dataclass

from querydesk.client.backends.base import QueryDeskBackend
from querydesk.errors import NothingToExport, QueryDeskError, ValidationError
from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage, ResultView
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate
from querydesk.services.builder_service import BuilderState, QueryBuilder
from querydesk.services.export_service import to_csv, to_json

log = logging.getLogger(__name__)


class RequestSequencer:
    """Issues monotonic request numbers and tells whether one is the latest."""

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, sequence: int) -> bool:
        return sequence == self._latest


@dataclass(frozen=True, slots=True)
class PendingQuery:
    sequence: int
    request: QueryRequest


class QuerySession:
    def __init__(self, backend: QueryDeskBackend, builder: QueryBuilder | None = None) -> None:
        self.backend = backend
        self.builder = builder or QueryBuilder()
        self.sequencer = RequestSequencer()
        self.view: ResultView | None = None
        self.tables: list[TableInfo] = []
        self.templates: list[ReportTemplate] = []

    # -- schema --------------------------------------------------------------

    def load_tables(self) -> list[TableInfo]:
        self.tables = self.backend.list_tables()
        return self.tables

    def select_table(self, name: str) -> BuilderState:
        for table in self.tables:
            if table.name == name:
                return self.builder.select_table(table)
        raise ValidationError(f"Unknown table: {name}")

    # -- execution -----------------------------------------------------------

    def begin(self) -> PendingQuery:
        """Build the current draft and tag it with a new sequence number."""
        request = self.builder.build()
        return PendingQuery(sequence=self.sequencer.issue(), request=request)

    def complete(self, pending: PendingQuery, page: ResultPage) -> bool:
        """Install a response unless a newer request has been issued since."""
        if not self.sequencer.is_current(pending.sequence):
            log.info(
                "Discarding stale response %d (latest is %d)",
                pending.sequence,
                self.sequencer.latest,
            )
            return False
        self.view = ResultView(page)
        return True

    def run(self) -> ResultView | None:
        """Execute the current draft and replace the result view.

        On failure the previous view is kept and the error propagates.
        """
        pending = self.begin()
        page = self.backend.execute_query(pending.request)
        self.complete(pending, page)
        return self.view

    def _rerun(self, previous: BuilderState) -> ResultView | None:
        """Run after a draft edit, putting ``previous`` back if the run fails."""
        try:
            return self.run()
        except QueryDeskError:
            self.builder.state = previous
            raise

    def go_to_page(self, n: int) -> ResultView | None:
        previous = self.builder.state
        if self.view is not None:
            n = self.view.go_to_page(n)
        self.builder.set_page(n)
        return self._rerun(previous)

    def set_page_size(self, page_size: int) -> ResultView | None:
        previous = self.builder.state
        self.builder.set_page_size(page_size)
        return self._rerun(previous)

    def sort_server(self, column: str, sort_order: str | None = None) -> ResultView | None:
        """Re-fetch ordered by ``column``; repeated calls flip the direction."""
        previous = self.builder.state
        draft = previous.draft
        if sort_order is None:
            same = draft.sort_by == column and draft.sort_order == "asc"
            sort_order = "desc" if same else "asc"
        self.builder.set_sort(column, sort_order)
        self.builder.set_page(1)
        return self._rerun(previous)

    def search_server(self, term: str | None) -> ResultView | None:
        """Re-fetch with a search applied to the whole result set."""
        previous = self.builder.state
        self.builder.set_search(term)
        return self._rerun(previous)

    # -- export --------------------------------------------------------------

    def export_page(self) -> str:
        if self.view is None:
            raise NothingToExport("No data to export")
        return to_csv(self.view.rows)

    def copy_page_json(self) -> str:
        return to_json(self.view.rows if self.view else [])

    def export_full(self, fmt: str = "csv") -> bytes:
        return self.backend.export(self.builder.build(), fmt)

    # -- templates -----------------------------------------------------------

    def list_templates(self) -> list[ReportTemplate]:
        self.templates = self.backend.list_templates()
        return self.templates

    def save_template(self, name: str) -> ReportTemplate:
        """Capture the draft as a new template and store it."""
        stored = self.backend.save_template(self.builder.to_template(name))
        self.templates = [stored] + [t for t in self.templates if t.id != stored.id]
        return stored

    def update_template(self, candidate: ReportTemplate) -> ReportTemplate:
        """Commit an edited template (see ReportTemplate.rename/update_sql)."""
        if not candidate.name.strip():
            raise ValidationError("Template name is required")
        stored = self.backend.save_template(candidate)
        self.templates = [stored if t.id == stored.id else t for t in self.templates]
        return stored

    def load_template(self, template: ReportTemplate) -> BuilderState:
        return self.builder.load_template(template)

    def delete_template(self, template_id: int) -> None:
        self.backend.delete_template(template_id)
        self.templates = [t for t in self.templates if t.id != template_id]

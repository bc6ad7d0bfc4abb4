"""Abstract backend protocol for QueryDeskClient."""

from typing import Protocol

from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate


class QueryDeskBackend(Protocol):
    """Protocol that all backends must implement."""

    def list_tables(self) -> list[TableInfo]:
        """List tables with their columns."""
        ...

    def execute_query(self, request: QueryRequest) -> ResultPage:
        """Execute one page of a query."""
        ...

    def export(self, request: QueryRequest, fmt: str = "csv") -> bytes:
        """Export the full result of a query."""
        ...

    def list_templates(self) -> list[ReportTemplate]:
        """List saved templates."""
        ...

    def save_template(self, template: ReportTemplate) -> ReportTemplate:
        """Store a template and return it with its assigned id."""
        ...

    def delete_template(self, template_id: int) -> None:
        """Delete a stored template."""
        ...

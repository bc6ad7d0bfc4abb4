"""QueryDeskClient facade: unified API for both local and HTTP modes."""

from typing import Any

from querydesk.client.session import QuerySession
from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate


class QueryDeskClient:
    """Main client for the QueryDesk query service.

    Supports two modes:
    - Local mode: direct SQLite + DuckDB access (same machine)
    - HTTP mode: remote API calls

    Usage:
        # Local mode (same machine, direct DB access)
        client = QueryDeskClient(db_path="/path/to/querydesk.sqlite3")

        # HTTP mode (remote server)
        client = QueryDeskClient(server_url="http://localhost:8080")

        # Run one page of a query
        page = client.execute_query(QueryRequest(columns=("id",), table_name="sales"))

        # Interactive session with builder and result view
        session = client.session()
    """

    def __init__(
        self,
        db_path: str | None = None,
        engine_path: str | None = None,
        server_url: str | None = None,
        timeout: float = 60.0,
        transport: Any = None,
    ) -> None:
        if db_path:
            from querydesk.client.backends.local import LocalBackend

            self.backend = LocalBackend(db_path, engine_path)
            self.mode = "local"
        elif server_url:
            from querydesk.client.backends.http import HttpBackend

            self.backend = HttpBackend(server_url, timeout=timeout, transport=transport)
            self.mode = "http"
        else:
            raise ValueError("Provide either db_path (local mode) or server_url (HTTP mode)")

    def list_tables(self) -> list[TableInfo]:
        """List tables and their columns."""
        return self.backend.list_tables()

    def execute_query(self, request: QueryRequest) -> ResultPage:
        """Run one page of a query."""
        return self.backend.execute_query(request)

    def export(self, request: QueryRequest, fmt: str = "csv") -> bytes:
        """Download the full result of a query."""
        return self.backend.export(request, fmt)

    def list_templates(self) -> list[ReportTemplate]:
        return self.backend.list_templates()

    def save_template(self, template: ReportTemplate) -> ReportTemplate:
        return self.backend.save_template(template)

    def delete_template(self, template_id: int) -> None:
        self.backend.delete_template(template_id)

    def session(self) -> QuerySession:
        """Start an interactive session bound to this client's backend."""
        return QuerySession(self.backend)

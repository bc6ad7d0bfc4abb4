"""Local backend for QueryDeskClient: direct SQLite + DuckDB access."""

from typing import Any

from querydesk.errors import TransportError
from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate


class LocalBackend:
    """Backend that reads the settings database and DuckDB file directly."""

    def __init__(self, db_path: str, engine_path: str | None = None) -> None:
        self.db_path = db_path
        self.engine_path = engine_path
        self._app: Any = None

    def _get_app(self) -> Any:
        """Create a Flask app with the correct database path."""
        if self._app is None:
            import os

            os.environ["QUERYDESK_DB"] = self.db_path
            from querydesk import create_app
            from querydesk.db import init_db_at

            init_db_at(self.db_path)
            self._app = create_app()
            if self.engine_path:
                self._app.config["ENGINE_DATABASE"] = self.engine_path
        return self._app

    def _engine(self) -> Any:
        from querydesk.services.query_service import engine_connection

        config = self._get_app().config
        return engine_connection(
            config["ENGINE_DATABASE"],
            read_only=bool(config.get("ENGINE_READ_ONLY", True)),
        )

    def list_tables(self) -> list[TableInfo]:
        from querydesk.services.query_service import list_tables

        with self._engine() as conn:
            return list_tables(conn)

    def execute_query(self, request: QueryRequest) -> ResultPage:
        from querydesk.services.query_service import execute_query

        config = self._get_app().config
        with self._engine() as conn:
            result = execute_query(conn, request, int(config.get("MAX_PAGE_SIZE", 1000)))
        if result.error:
            raise TransportError(result.error)
        return result.to_page()

    def export(self, request: QueryRequest, fmt: str = "csv") -> bytes:
        from querydesk.services.export_service import generate_download
        from querydesk.services.query_service import fetch_all

        config = self._get_app().config
        with self._engine() as conn:
            result = fetch_all(conn, request, int(config.get("EXPORT_MAX_ROWS", 10000)))
        if result.error:
            raise TransportError(result.error)
        data, _, _ = generate_download(result.columns, result.rows, fmt)
        return data

    def list_templates(self) -> list[ReportTemplate]:
        with self._get_app().app_context():
            return ReportTemplate.get_all()

    def save_template(self, template: ReportTemplate) -> ReportTemplate:
        with self._get_app().app_context():
            stored = template.save()
        if stored is None:
            raise TransportError(f"Template {template.id} not found", 404)
        return stored

    def delete_template(self, template_id: int) -> None:
        with self._get_app().app_context():
            template = ReportTemplate.get_by_id(template_id)
            if template is None:
                raise TransportError(f"Template {template_id} not found", 404)
            template.delete()

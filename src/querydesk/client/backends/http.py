"""HTTP API backend for QueryDeskClient (remote server)."""

import logging
from typing import Any

import httpx

from querydesk.errors import TransportError
from querydesk.models.query_request import QueryRequest
from querydesk.models.result_page import ResultPage
from querydesk.models.table import TableInfo
from querydesk.models.template import ReportTemplate

log = logging.getLogger(__name__)


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback


class HttpBackend:
    """Backend that communicates with a remote QueryDesk server via JSON API."""

    def __init__(
        self,
        server_url: str,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.server_url,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _request(self, method: str, path: str, fallback: str, **kwargs: Any) -> httpx.Response:
        try:
            with self._client() as client:
                resp = client.request(method, f"/api{path}", **kwargs)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %s", method, path, e)
            raise TransportError(f"{fallback}: server unreachable") from e

        if resp.status_code >= 400:
            message = _error_message(resp, fallback)
            log.warning("%s %s returned %d: %s", method, path, resp.status_code, message)
            raise TransportError(message, resp.status_code)
        return resp

    def _json(self, method: str, path: str, fallback: str, **kwargs: Any) -> Any:
        resp = self._request(method, path, fallback, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            log.warning("%s %s returned a body that is not JSON", method, path)
            raise TransportError(fallback, resp.status_code) from e

    def list_tables(self) -> list[TableInfo]:
        """Fetch tables and their columns."""
        data = self._json("GET", "/tables", "Failed to load tables")
        return [TableInfo.from_dict(t) for t in data or []]

    def execute_query(self, request: QueryRequest) -> ResultPage:
        """Execute a query via the API."""
        data = self._json("POST", "/query", "Failed to execute query", json=request.to_dict())
        return ResultPage.from_dict(data)

    def export(self, request: QueryRequest, fmt: str = "csv") -> bytes:
        """Download the full result of a query."""
        resp = self._request(
            "POST",
            "/export",
            "Failed to export results",
            json=request.to_dict(),
            params={"format": fmt},
        )
        return resp.content

    def list_templates(self) -> list[ReportTemplate]:
        data = self._json("GET", "/templates", "Failed to load templates")
        return [ReportTemplate.from_dict(t) for t in data or []]

    def save_template(self, template: ReportTemplate) -> ReportTemplate:
        data = self._json(
            "POST", "/templates", "Failed to save template", json=template.to_dict()
        )
        return ReportTemplate.from_dict(data)

    def delete_template(self, template_id: int) -> None:
        self._request("DELETE", f"/templates/{template_id}", "Failed to delete template")

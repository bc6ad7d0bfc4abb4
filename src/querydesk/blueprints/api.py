"""API blueprint: schema introspection, query execution, export and templates."""

import logging
import time
from typing import Any

from flask import Blueprint, abort, current_app, jsonify, request
from flask import Response as FlaskResponse
from werkzeug.exceptions import HTTPException

from querydesk.errors import QueryDeskError, ValidationError
from querydesk.models.query_request import QueryRequest
from querydesk.models.template import ReportTemplate
from querydesk.services import query_service
from querydesk.services.export_service import generate_download

log = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/api")


def _error(message: str, status: int = 400) -> FlaskResponse:
    response = jsonify({"error": message})
    response.status_code = status
    return response


@bp.errorhandler(ValidationError)
def handle_validation_error(e: ValidationError) -> FlaskResponse:
    log.warning("Rejected request to %s: %s", request.path, e)
    return _error(str(e), 400)


@bp.errorhandler(QueryDeskError)
def handle_querydesk_error(e: QueryDeskError) -> FlaskResponse:
    return _error(str(e), 400)


@bp.errorhandler(HTTPException)
def handle_http_error(e: HTTPException) -> FlaskResponse:
    return _error(e.description or e.name, e.code or 500)


def _engine() -> Any:
    return query_service.engine_connection(
        current_app.config["ENGINE_DATABASE"],
        read_only=bool(current_app.config.get("ENGINE_READ_ONLY", True)),
    )


def _request_body() -> QueryRequest:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return QueryRequest.from_dict(
        data,
        default_page_size=int(current_app.config.get("DEFAULT_PAGE_SIZE", 50)),
    )


# --- Schema ---


@bp.route("/tables")
def list_tables() -> FlaskResponse:
    """List tables with their columns."""
    with _engine() as conn:
        tables = query_service.list_tables(conn)
    return jsonify([t.to_dict() for t in tables])


@bp.route("/tables/<table_name>/columns")
def table_columns(table_name: str) -> FlaskResponse:
    """List the columns of one table."""
    with _engine() as conn:
        table = query_service.get_table(conn, table_name)
    if table is None:
        abort(404, description=f"Table {table_name} not found")
    return jsonify([c.to_dict() for c in table.columns])


# --- Query execution ---


@bp.route("/query", methods=["POST"])
def run_query() -> FlaskResponse:
    """Execute one page of a query request and return it as JSON."""
    query_request = _request_body()

    with _engine() as conn:
        result = query_service.execute_query(
            conn,
            query_request,
            max_page_size=int(current_app.config.get("MAX_PAGE_SIZE", 1000)),
        )

    if result.error:
        log.warning("Query execution error: %s", result.error)
        return _error(result.error, 400)

    return jsonify(result.to_page().to_dict())


@bp.route("/export", methods=["POST"])
def export() -> FlaskResponse:
    """Export the full result of a query request (CSV unless ?format= says otherwise)."""
    fmt = request.args.get("format", "csv").lower()
    query_request = _request_body()

    with _engine() as conn:
        result = query_service.fetch_all(
            conn,
            query_request,
            limit=int(current_app.config.get("EXPORT_MAX_ROWS", 10000)),
        )

    if result.error:
        log.warning("Export execution error: %s", result.error)
        return _error(result.error, 400)

    try:
        data, mimetype, extension = generate_download(result.columns, result.rows, fmt)
    except ValueError as e:
        return _error(str(e), 400)

    filename = f"report_{int(time.time())}{extension}"
    return FlaskResponse(
        data,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Templates ---


@bp.route("/templates")
def list_templates() -> FlaskResponse:
    """List saved templates, most recently updated first."""
    return jsonify([t.to_dict() for t in ReportTemplate.get_all()])


@bp.route("/templates/<int:template_id>")
def get_template(template_id: int) -> FlaskResponse:
    template = ReportTemplate.get_by_id(template_id)
    if not template:
        abort(404, description="Template not found")
    return jsonify(template.to_dict())


@bp.route("/templates", methods=["POST"])
def save_template() -> FlaskResponse:
    """Create a template, or overwrite an existing one when the body has an id."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    template = ReportTemplate.from_dict(data)
    if not template.name.strip():
        raise ValidationError("Template name is required")

    stored = template.save()
    if stored is None:
        abort(404, description="Template not found")

    log.info("Saved template %d (%s)", stored.id, stored.name)
    return jsonify(stored.to_dict())


@bp.route("/templates/<int:template_id>", methods=["DELETE"])
def delete_template(template_id: int) -> FlaskResponse:
    template = ReportTemplate.get_by_id(template_id)
    if not template:
        abort(404, description="Template not found")

    template.delete()
    return jsonify({"message": "Template deleted successfully"})

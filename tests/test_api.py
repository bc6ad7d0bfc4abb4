import io

from flask.testing import FlaskClient
from openpyxl import load_workbook


def _query(**overrides) -> dict:
    body = {"tableName": "sales", "columns": ["id", "region"], "sortBy": "id"}
    body.update(overrides)
    return body


def test_index(client: FlaskClient) -> None:
    resp = client.get("/")
    assert resp.get_json() == {"name": "querydesk", "status": "ok"}


class TestSchema:
    def test_tables(self, client: FlaskClient) -> None:
        resp = client.get("/api/tables")
        assert resp.status_code == 200
        assert [t["name"] for t in resp.get_json()] == ["customers", "sales"]

    def test_columns(self, client: FlaskClient) -> None:
        columns = client.get("/api/tables/sales/columns").get_json()
        assert columns[2] == {
            "name": "amount",
            "type": "DOUBLE",
            "nullable": True,
            "dataType": "number",
        }

    def test_columns_of_missing_table(self, client: FlaskClient) -> None:
        resp = client.get("/api/tables/nowhere/columns")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Table nowhere not found"}


class TestQuery:
    def test_page(self, client: FlaskClient) -> None:
        resp = client.post("/api/query", json=_query(page=2, pageSize=5))
        assert resp.status_code == 200
        body = resp.get_json()
        assert [r["id"] for r in body["data"]] == [6, 7, 8, 9, 10]
        assert (body["total"], body["page"], body["pageSize"], body["totalPages"]) == (
            12,
            2,
            5,
            3,
        )

    def test_field_order_on_the_wire(self, client: FlaskClient) -> None:
        resp = client.post("/api/query", json=_query(columns=["region", "id"]))
        assert list(resp.get_json()["data"][0].keys()) == ["region", "id"]

    def test_defaults_applied(self, client: FlaskClient) -> None:
        body = client.post("/api/query", json=_query(page=0, pageSize=0)).get_json()
        assert (body["page"], body["pageSize"]) == (1, 50)

    def test_filters(self, client: FlaskClient) -> None:
        filters = [
            {"field": "amount", "operator": "BETWEEN", "value": "50,80", "type": "number"},
            {"field": "region", "operator": "!=", "value": "north"},
        ]
        body = client.post("/api/query", json=_query(filters=filters)).get_json()
        assert [r["id"] for r in body["data"]] == [6, 7, 8]

    def test_raw_sql(self, client: FlaskClient) -> None:
        resp = client.post("/api/query", json={"sql": "SELECT 42 AS answer"})
        assert resp.get_json()["data"] == [{"answer": 42}]

    def test_engine_error(self, client: FlaskClient) -> None:
        resp = client.post("/api/query", json={"sql": "SELEC nonsense"})
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Query error:")

    def test_invalid_filter(self, client: FlaskClient) -> None:
        filters = [{"field": "sold_on", "operator": "LIKE", "value": "x", "type": "date"}]
        resp = client.post("/api/query", json=_query(filters=filters))
        assert resp.status_code == 400
        assert "not allowed" in resp.get_json()["error"]

    def test_unknown_operator(self, client: FlaskClient) -> None:
        filters = [{"field": "region", "operator": "~", "value": "x"}]
        resp = client.post("/api/query", json=_query(filters=filters))
        assert resp.status_code == 400

    def test_body_must_be_object(self, client: FlaskClient) -> None:
        resp = client.post("/api/query", data="[]", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Request body must be a JSON object"}

    def test_cors_for_allowed_origin(self, client: FlaskClient) -> None:
        resp = client.post(
            "/api/query", json=_query(), headers={"Origin": "http://localhost:3000"}
        )
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        other = client.post("/api/query", json=_query(), headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in other.headers


class TestExport:
    def test_csv(self, client: FlaskClient) -> None:
        resp = client.post("/api/export", json=_query(pageSize=5))
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert resp.headers["Content-Disposition"].startswith('attachment; filename="report_')
        lines = resp.get_data(as_text=True).splitlines()
        assert lines[0] == "id,region"
        assert len(lines) == 13

    def test_xlsx(self, client: FlaskClient) -> None:
        resp = client.post("/api/export?format=xlsx", json=_query())
        ws = load_workbook(io.BytesIO(resp.get_data())).active
        assert ws.max_row == 13

    def test_json(self, client: FlaskClient) -> None:
        resp = client.post("/api/export?format=json", json={"sql": "SELECT 1 AS one"})
        assert resp.get_json() == [{"one": 1}]

    def test_unsupported_format(self, client: FlaskClient) -> None:
        resp = client.post("/api/export?format=pdf", json=_query())
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Unsupported format: pdf"}

    def test_export_row_cap(self, app, client: FlaskClient) -> None:
        app.config["EXPORT_MAX_ROWS"] = 3
        lines = client.post("/api/export", json=_query()).get_data(as_text=True).splitlines()
        assert len(lines) == 4


class TestTemplates:
    def test_lifecycle(self, client: FlaskClient) -> None:
        created = client.post(
            "/api/templates",
            json={"name": "North", "sql": "SELECT * FROM sales", "columns": ["id"]},
        ).get_json()
        assert created["id"] > 0
        assert created["columns"] == ["id"]
        assert created["created_at"]

        listed = client.get("/api/templates").get_json()
        assert [t["id"] for t in listed] == [created["id"]]

        updated = client.post(
            "/api/templates",
            json={"id": created["id"], "name": "North v2", "sql": "SELECT 2"},
        ).get_json()
        assert updated["id"] == created["id"]
        assert updated["name"] == "North v2"

        fetched = client.get(f"/api/templates/{created['id']}").get_json()
        assert fetched["sql"] == "SELECT 2"

        resp = client.delete(f"/api/templates/{created['id']}")
        assert resp.get_json() == {"message": "Template deleted successfully"}
        assert client.delete(f"/api/templates/{created['id']}").status_code == 404
        assert client.get("/api/templates").get_json() == []

    def test_filters_survive(self, client: FlaskClient) -> None:
        flt = {"field": "region", "operator": "IN", "value": ["north", "east"], "type": "text"}
        created = client.post(
            "/api/templates", json={"name": "t", "sql": "SELECT 1", "filters": [flt]}
        ).get_json()
        assert client.get(f"/api/templates/{created['id']}").get_json()["filters"] == [flt]

    def test_name_required(self, client: FlaskClient) -> None:
        resp = client.post("/api/templates", json={"name": "  ", "sql": "SELECT 1"})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Template name is required"}

    def test_update_missing(self, client: FlaskClient) -> None:
        resp = client.post("/api/templates", json={"id": 77, "name": "x", "sql": "SELECT 1"})
        assert resp.status_code == 404

    def test_get_missing(self, client: FlaskClient) -> None:
        assert client.get("/api/templates/5").status_code == 404

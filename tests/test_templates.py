import pytest
from flask import Flask

from querydesk.errors import MissingName
from querydesk.models.filter import DataType, Filter, Operator
from querydesk.models.template import ReportTemplate, round_trip


def _template() -> ReportTemplate:
    return ReportTemplate(
        name="Big sales",
        sql="SELECT * FROM sales WHERE amount > 100",
        columns=["id", "amount"],
        filters=[Filter("amount", Operator.GT, 100, DataType.NUMBER)],
    )


class TestTemplateModel:
    def test_round_trip_preserves_content(self) -> None:
        template = _template()
        assert round_trip(template).same_content(template)

    def test_round_trip_of_list_values(self) -> None:
        template = ReportTemplate(
            name="Regions",
            sql="SELECT 1",
            filters=[Filter("region", Operator.IN, ["north", "south"])],
        )
        assert round_trip(template).filters == template.filters

    def test_wire_form_uses_snake_case_timestamps(self) -> None:
        data = ReportTemplate(
            name="t", sql="SELECT 1", id=3, created_at="2024-01-01", updated_at="2024-01-02"
        ).to_dict()
        assert data == {
            "name": "t",
            "sql": "SELECT 1",
            "id": 3,
            "created_at": "2024-01-01",
            "updated_at": "2024-01-02",
        }

    def test_rename_returns_candidate(self) -> None:
        template = _template()
        renamed = template.rename("  Large sales ")
        assert renamed.name == "Large sales"
        assert template.name == "Big sales"

    def test_rename_requires_name(self) -> None:
        with pytest.raises(MissingName):
            _template().rename("   ")

    def test_update_sql_returns_candidate(self) -> None:
        template = _template()
        edited = template.update_sql("SELECT 2")
        assert edited.sql == "SELECT 2"
        assert template.sql != "SELECT 2"

    def test_same_content_ignores_identity(self) -> None:
        a = _template()
        b = _template()
        b.id = 9
        b.updated_at = "later"
        assert a.same_content(b)


class TestTemplateStore:
    def test_create_and_fetch(self, app: Flask) -> None:
        with app.app_context():
            created = ReportTemplate.create("  Weekly ", "SELECT 1", ["one"], [])
            fetched = ReportTemplate.get_by_id(created.id)  # type: ignore[arg-type]
        assert fetched is not None
        assert fetched.name == "Weekly"
        assert fetched.columns == ["one"]
        assert fetched.filters == []
        assert fetched.created_at == fetched.updated_at

    def test_filters_persisted(self, app: Flask) -> None:
        template = _template()
        with app.app_context():
            stored = template.save()
            assert stored is not None
            fetched = ReportTemplate.get_by_id(stored.id)  # type: ignore[arg-type]
        assert fetched is not None
        assert fetched.same_content(template)

    def test_create_requires_name(self, app: Flask) -> None:
        with app.app_context(), pytest.raises(MissingName):
            ReportTemplate.create(" ", "SELECT 1")

    def test_list_most_recent_first(self, app: Flask) -> None:
        with app.app_context():
            first = ReportTemplate.create("first", "SELECT 1")
            second = ReportTemplate.create("second", "SELECT 2")
            first.update(sql="SELECT 11")
            names = [t.name for t in ReportTemplate.get_all()]
        assert names == ["first", "second"]
        assert second.id is not None

    def test_save_existing_overwrites(self, app: Flask) -> None:
        with app.app_context():
            stored = ReportTemplate.create("old", "SELECT 1")
            stored_again = stored.rename("new").update_sql("SELECT 2").save()
            assert stored_again is not None
            assert stored_again.id == stored.id
            assert len(ReportTemplate.get_all()) == 1
            fetched = ReportTemplate.get_by_id(stored.id)  # type: ignore[arg-type]
            assert fetched is not None
            assert fetched.sql == "SELECT 2"

    def test_save_unknown_id(self, app: Flask) -> None:
        with app.app_context():
            assert ReportTemplate(name="ghost", sql="SELECT 1", id=404).save() is None

    def test_update_without_changes(self, app: Flask) -> None:
        with app.app_context():
            stored = ReportTemplate.create("t", "SELECT 1")
            assert stored.update() is False

    def test_delete(self, app: Flask) -> None:
        with app.app_context():
            stored = ReportTemplate.create("t", "SELECT 1")
            assert stored.delete() is True
            assert stored.delete() is False
            assert ReportTemplate.get_all() == []

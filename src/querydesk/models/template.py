"""Report template model: a named, reusable query."""

import json
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from querydesk.db import get_db, transaction
from querydesk.errors import MissingName
from querydesk.models.filter import Filter


@dataclass
class ReportTemplate:
    name: str
    sql: str
    columns: list[str] | None = None
    filters: list[Filter] | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    # -- edit candidates (never persisted until saved) ----------------------

    def rename(self, name: str) -> "ReportTemplate":
        if not name or not name.strip():
            raise MissingName("Template name is required")
        return replace(self, name=name.strip())

    def update_sql(self, sql: str) -> "ReportTemplate":
        return replace(self, sql=sql)

    def same_content(self, other: "ReportTemplate") -> bool:
        """Compare everything except the server-assigned id and timestamps."""
        return (
            self.name == other.name
            and self.sql == other.sql
            and self.columns == other.columns
            and self.filters == other.filters
        )

    # -- wire form -----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "sql": self.sql}
        if self.id is not None:
            data["id"] = self.id
        if self.columns is not None:
            data["columns"] = list(self.columns)
        if self.filters is not None:
            data["filters"] = [f.to_dict() for f in self.filters]
        if self.created_at is not None:
            data["created_at"] = self.created_at
        if self.updated_at is not None:
            data["updated_at"] = self.updated_at
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReportTemplate":
        columns = data.get("columns")
        filters = data.get("filters")
        return ReportTemplate(
            id=int(data["id"]) if data.get("id") else None,
            name=str(data.get("name") or ""),
            sql=str(data.get("sql") or ""),
            columns=[str(c) for c in columns] if columns is not None else None,
            filters=[Filter.from_dict(f) for f in filters] if filters is not None else None,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    # -- storage -------------------------------------------------------------

    @staticmethod
    def _from_row(row: tuple[Any, ...]) -> "ReportTemplate":
        return ReportTemplate(
            id=int(row[0]),
            name=str(row[1]),
            sql=str(row[2]),
            columns=json.loads(row[3]) if row[3] is not None else None,
            filters=(
                [Filter.from_dict(f) for f in json.loads(row[4])] if row[4] is not None else None
            ),
            created_at=str(row[5]),
            updated_at=str(row[6]),
        )

    _COLUMNS = "id, name, sql, columns_json, filters_json, created_at, updated_at"

    @staticmethod
    def get_by_id(template_id: int) -> "ReportTemplate | None":
        db = get_db()
        row = db.execute(
            f"SELECT {ReportTemplate._COLUMNS} FROM report_template WHERE id = ?",
            (template_id,),
        ).fetchone()
        return ReportTemplate._from_row(row) if row else None

    @staticmethod
    def get_all() -> "list[ReportTemplate]":
        db = get_db()
        rows = db.execute(
            f"SELECT {ReportTemplate._COLUMNS} FROM report_template "
            "ORDER BY updated_at DESC, id DESC"
        ).fetchall()
        return [ReportTemplate._from_row(row) for row in rows]

    @staticmethod
    def create(
        name: str,
        sql: str,
        columns: list[str] | None = None,
        filters: list[Filter] | None = None,
    ) -> "ReportTemplate":
        if not name or not name.strip():
            raise MissingName("Template name is required")
        now = datetime.now(UTC).isoformat()

        with transaction() as cursor:
            cursor.execute(
                "INSERT INTO report_template (name, sql, columns_json, filters_json, "
                "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    name.strip(),
                    sql,
                    _dump_columns(columns),
                    _dump_filters(filters),
                    now,
                    now,
                ),
            )
            row = cursor.execute("SELECT last_insert_rowid()").fetchone()
            template_id = int(row[0]) if row else 0

        return ReportTemplate(
            id=template_id,
            name=name.strip(),
            sql=sql,
            columns=list(columns) if columns is not None else None,
            filters=list(filters) if filters is not None else None,
            created_at=now,
            updated_at=now,
        )

    def update(
        self,
        name: str | None = None,
        sql: str | None = None,
        columns: list[str] | None = None,
        filters: list[Filter] | None = None,
    ) -> bool:
        updates: list[str] = []
        params: list[Any] = []

        if name is not None:
            if not name.strip():
                raise MissingName("Template name is required")
            updates.append("name = ?")
            params.append(name.strip())
        if sql is not None:
            updates.append("sql = ?")
            params.append(sql)
        if columns is not None:
            updates.append("columns_json = ?")
            params.append(_dump_columns(columns))
        if filters is not None:
            updates.append("filters_json = ?")
            params.append(_dump_filters(filters))

        if not updates:
            return False

        now = datetime.now(UTC).isoformat()
        updates.append("updated_at = ?")
        params.append(now)
        params.append(self.id)

        with transaction() as cursor:
            cursor.execute(
                f"UPDATE report_template SET {', '.join(updates)} WHERE id = ?",
                params,
            )

        if name is not None:
            self.name = name.strip()
        if sql is not None:
            self.sql = sql
        if columns is not None:
            self.columns = list(columns)
        if filters is not None:
            self.filters = list(filters)
        self.updated_at = now
        return True

    def delete(self) -> bool:
        with transaction() as cursor:
            cursor.execute("DELETE FROM report_template WHERE id = ?", (self.id,))
            return cursor.execute("SELECT changes()").fetchone()[0] > 0  # type: ignore[index]

    def save(self) -> "ReportTemplate | None":
        """Insert a new template, or overwrite the stored one with this id.

        Returns the stored template, or None when the id does not exist.
        """
        if self.id is None:
            return ReportTemplate.create(self.name, self.sql, self.columns, self.filters)

        stored = ReportTemplate.get_by_id(self.id)
        if stored is None:
            return None
        stored.update(
            name=self.name,
            sql=self.sql,
            columns=self.columns,
            filters=self.filters,
        )
        return stored


def round_trip(template: ReportTemplate) -> ReportTemplate:
    """Encode a template to its wire form and decode it again."""
    return ReportTemplate.from_dict(json.loads(json.dumps(template.to_dict())))


def _dump_columns(columns: list[str] | None) -> str | None:
    return json.dumps(list(columns)) if columns is not None else None


def _dump_filters(filters: list[Filter] | None) -> str | None:
    if filters is None:
        return None
    return json.dumps([f.to_dict() for f in filters])

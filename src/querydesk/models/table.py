"""Table and column descriptors produced by schema introspection."""

import re
from dataclasses import dataclass, field
from typing import Any

from querydesk.models.filter import DataType

_NUMBER_RE = re.compile(
    r"^(TINYINT|SMALLINT|INTEGER|INT\d*|BIGINT|HUGEINT|UTINYINT|USMALLINT|UINTEGER|UBIGINT|"
    r"UHUGEINT|DECIMAL|NUMERIC|REAL|FLOAT\d*|DOUBLE( PRECISION)?)\b"
)
_DATE_RE = re.compile(r"^(DATE|TIME|TIMESTAMP|DATETIME)\b")
_ENUM_RE = re.compile(r"^(ENUM|BOOL|BOOLEAN)\b")


def data_type_for(engine_type: str) -> DataType:
    """Map a raw engine column type to the filterable data type."""
    normalized = engine_type.strip().upper()
    if _NUMBER_RE.match(normalized):
        return DataType.NUMBER
    if _DATE_RE.match(normalized):
        return DataType.DATE
    if _ENUM_RE.match(normalized):
        return DataType.ENUM
    return DataType.TEXT


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    name: str
    type: str
    nullable: bool = True

    @property
    def data_type(self) -> DataType:
        return data_type_for(self.type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "nullable": self.nullable,
            "dataType": self.data_type.value,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ColumnInfo":
        return ColumnInfo(
            name=str(data["name"]),
            type=str(data.get("type", "")),
            nullable=bool(data.get("nullable", True)),
        )


@dataclass(frozen=True, slots=True)
class TableInfo:
    name: str
    columns: tuple[ColumnInfo, ...] = field(default_factory=tuple)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnInfo | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "columns": [c.to_dict() for c in self.columns]}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "TableInfo":
        return TableInfo(
            name=str(data["name"]),
            columns=tuple(ColumnInfo.from_dict(c) for c in data.get("columns") or []),
        )

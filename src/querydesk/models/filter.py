"""Filter predicate model: a field, an operator, a value and a declared type."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from querydesk.errors import FilterError, IncompatibleOperator


class DataType(Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    ENUM = "enum"


class Operator(Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    LIKE = "LIKE"
    IN = "IN"
    BETWEEN = "BETWEEN"


# Human-readable labels shown next to each operator in a picker
OPERATOR_LABELS: dict[Operator, str] = {
    Operator.EQ: "Equals",
    Operator.NE: "Not Equals",
    Operator.GT: "Greater Than",
    Operator.LT: "Less Than",
    Operator.GE: "Greater or Equal",
    Operator.LE: "Less or Equal",
    Operator.LIKE: "Contains",
    Operator.IN: "In List",
    Operator.BETWEEN: "Between",
}


def parse_data_type(raw: str | DataType | None) -> DataType:
    """Parse a wire data type, defaulting to text when absent."""
    if isinstance(raw, DataType):
        return raw
    if not raw:
        return DataType.TEXT
    try:
        return DataType(str(raw).lower())
    except ValueError:
        raise FilterError(f"Unknown filter type: {raw}") from None


def parse_operator(raw: str | Operator | None) -> Operator:
    """Parse a wire operator, defaulting to equality when absent."""
    if isinstance(raw, Operator):
        return raw
    if not raw:
        return Operator.EQ
    try:
        return Operator(str(raw).strip().upper())
    except ValueError:
        raise IncompatibleOperator(f"Unknown operator: {raw}") from None


@dataclass(frozen=True, slots=True)
class Filter:
    field: str
    operator: Operator
    value: Any
    type: DataType = DataType.TEXT

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, (list, tuple)) else self.value
        return {
            "field": self.field,
            "operator": self.operator.value,
            "value": value,
            "type": self.type.value,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Filter":
        return Filter(
            field=str(data.get("field") or ""),
            operator=parse_operator(data.get("operator")),
            value=data.get("value"),
            type=parse_data_type(data.get("type")),
        )

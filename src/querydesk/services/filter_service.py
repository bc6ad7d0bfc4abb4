"""Filter service for operator compatibility, value coercion and validation.

Numeric leniency: a number filter whose value cannot be parsed is normalized
to 0 instead of being rejected.  This mirrors the forgiving input handling of
the query form and is intentional; dates, IN lists and BETWEEN pairs are
still rejected when malformed.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from querydesk.errors import (
    IncompatibleOperator,
    MissingField,
    MissingValue,
    UnknownField,
    UnparsableValue,
)
from querydesk.models.filter import DataType, Filter, Operator

log = logging.getLogger(__name__)

_OPERATORS: dict[DataType, tuple[Operator, ...]] = {
    DataType.TEXT: (Operator.EQ, Operator.NE, Operator.LIKE, Operator.IN),
    DataType.NUMBER: (
        Operator.EQ,
        Operator.NE,
        Operator.GT,
        Operator.LT,
        Operator.GE,
        Operator.LE,
        Operator.IN,
        Operator.BETWEEN,
    ),
    DataType.DATE: (
        Operator.EQ,
        Operator.NE,
        Operator.GT,
        Operator.LT,
        Operator.GE,
        Operator.LE,
        Operator.BETWEEN,
    ),
    DataType.ENUM: (Operator.EQ, Operator.NE, Operator.IN),
}


def operators_for(data_type: DataType) -> tuple[Operator, ...]:
    """Return the operators allowed for a data type, in display order."""
    return _OPERATORS[data_type]


def is_compatible(data_type: DataType, operator: Operator) -> bool:
    return operator in _OPERATORS[data_type]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def split_list(value: Any) -> list[Any]:
    """Split a comma-separated string (or pass through a list) into items."""
    if isinstance(value, (list, tuple)):
        items: Iterable[Any] = value
    else:
        items = str(value).split(",")
    result = []
    for item in items:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        elif item is None:
            continue
        result.append(item)
    return result


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        number: int | float = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                log.debug("Non-numeric filter value %r normalized to 0", value)
                return 0
    if isinstance(number, float) and not math.isfinite(number):
        return 0
    return number


def _to_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).isoformat()
    except ValueError:
        raise UnparsableValue(f"'{value}' is not an ISO date") from None


def _coerce_scalar(value: Any, data_type: DataType) -> Any:
    match data_type:
        case DataType.NUMBER:
            return _to_number(value)
        case DataType.DATE:
            return _to_date(value)
        case DataType.ENUM:
            return str(value).strip()
        case _:
            return str(value)


def coerce_value(value: Any, data_type: DataType, operator: Operator) -> Any:
    """Normalize a filter value to the shape the operator expects.

    IN yields a non-empty list, BETWEEN a two-item list, every other operator
    a single scalar.  Raises UnparsableValue on malformed input.
    """
    if operator is Operator.IN:
        items = split_list(value)
        if not items:
            raise UnparsableValue("IN requires a non-empty comma-separated list")
        return [_coerce_scalar(item, data_type) for item in items]

    if operator is Operator.BETWEEN:
        items = split_list(value)
        if len(items) != 2:
            raise UnparsableValue("BETWEEN requires exactly two bounds")
        return [_coerce_scalar(item, data_type) for item in items]

    if isinstance(value, (list, tuple)):
        raise UnparsableValue(f"Operator {operator.value} expects a single value")
    return _coerce_scalar(value, data_type)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_missing(value: Any, data_type: DataType) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip() and data_type is not DataType.TEXT:
        return True
    return False


def validate(filter: Filter, known_fields: Iterable[str] | None = None) -> Filter:
    """Validate a filter and return a normalized copy.

    Raises a FilterError subclass describing the first rule violated.
    """
    if not filter.field or not filter.field.strip():
        raise MissingField("Filter field is required")

    if known_fields is not None and filter.field not in set(known_fields):
        raise UnknownField(f"Unknown field: {filter.field}")

    if not is_compatible(filter.type, filter.operator):
        allowed = ", ".join(op.value for op in operators_for(filter.type))
        raise IncompatibleOperator(
            f"Operator {filter.operator.value} is not allowed for {filter.type.value} "
            f"fields (allowed: {allowed})"
        )

    if _is_missing(filter.value, filter.type):
        raise MissingValue(f"Filter on '{filter.field}' has no value")

    value = coerce_value(filter.value, filter.type, filter.operator)
    return replace(filter, value=value)

"""
Row <-> JSON helpers shared by the services.

ORM rows are exposed to the API as plain dicts with snake_case keys:
UUIDs become strings, Decimals become floats and dates ISO strings.
Incoming JSON values are coerced back to the column's Python type.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, inspect
from sqlalchemy.types import Uuid

from calculator.decimal_math import to_decimal


def to_json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def row_to_dict(obj, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """All mapped columns of ``obj`` keyed by attribute name."""
    skip = set(exclude)
    return {
        attr.key: to_json_value(getattr(obj, attr.key))
        for attr in inspect(obj).mapper.column_attrs
        if attr.key not in skip
    }


def as_uuid(value: Any) -> Optional[UUID]:
    """Parse a UUID from a string; None and "" give None."""
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


def coerce_column_value(model, key: str, value: Any) -> Any:
    """
    Convert a JSON value to the Python type of ``model.<key>``.

    Raises:
        ValueError: If the value cannot be converted
    """
    if value is None:
        return None

    column_type = inspect(model).columns[key].type

    if isinstance(column_type, Uuid):
        return as_uuid(value)
    if isinstance(column_type, DateTime):
        return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if isinstance(column_type, Date):
        if value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        return value if isinstance(value, date) else date.fromisoformat(str(value)[:10])
    if isinstance(column_type, Numeric):
        return None if value == "" else to_decimal(value)
    if isinstance(column_type, Boolean):
        return bool(value)
    if isinstance(column_type, Integer):
        return None if value == "" else int(value)
    return value


def mapped_fields(model, exclude: Iterable[str] = ()) -> frozenset:
    """Attribute names of ``model``'s columns, minus ``exclude``."""
    skip = set(exclude)
    return frozenset(
        attr.key for attr in inspect(model).column_attrs if attr.key not in skip
    )

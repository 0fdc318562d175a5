"""Helpers for reading trade-like records (models, schemas or plain dicts)."""

import math
from decimal import Decimal, InvalidOperation
from typing import Any


def get_field(record: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a dict or an attribute-style object."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def to_float(value: Any) -> float | None:
    """Coerce a numeric value to a finite float, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a numeric value to a finite Decimal via its string form."""
    number = to_float(value)
    if number is None:
        return None
    try:
        return Decimal(str(number))
    except InvalidOperation:
        return None

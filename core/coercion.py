# core/coercion.py

"""
Uniform coercion for upstream values.

The society backend returns ids and money as numbers, numeric strings or
null depending on the endpoint. Every scope predicate and aggregator goes
through these helpers instead of comparing or adding raw values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


ZERO = Decimal("0")
CENT = Decimal("0.01")

_DELETED_MARKERS = {"1", "true", "yes", "y"}


def to_number_or_zero(value: Any) -> Decimal:
    """
    Convert a monetary value to Decimal.
    None, booleans, empty strings, garbage, NaN and infinities → 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        return Decimal(value)
    elif isinstance(value, float):
        # repr() keeps 0.1 as 0.1 instead of its binary expansion
        number = Decimal(repr(value)) if value == value else ZERO
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return ZERO
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not number.is_finite():
        return ZERO
    return number


def to_id_or_none(value: Any) -> Optional[int]:
    """
    Convert a foreign key to a positive int.
    Anything that is not a whole positive number → None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if value > 0 else None

    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        if not value.is_integer():
            return None
        return int(value) if value > 0 else None

    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            return None
        if not number.is_finite() or number != number.to_integral_value():
            return None
        number = int(number)
        return number if number > 0 else None

    return None


def is_deleted(record: Any) -> bool:
    """Soft-delete flag check. Missing flag means live."""
    if not isinstance(record, dict):
        return True

    flag = record.get("is_deleted")
    if flag is None:
        return False
    if isinstance(flag, bool):
        return flag
    if isinstance(flag, (int, float)):
        return flag != 0
    if isinstance(flag, str):
        return flag.strip().lower() in _DELETED_MARKERS
    return False


def money(value: Decimal) -> float:
    """Round to cents for presentation."""
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))

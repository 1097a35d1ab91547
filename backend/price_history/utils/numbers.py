# backend/price_history/utils/numbers.py
"""
Lenient number conversion helpers.

Values arrive from JSON payloads (floats, ints, None, NaN) and from CSV cells
(strings, possibly blank or with thousands separators). These helpers turn
them into Decimal/int, returning None instead of raising for anything that is
not a finite number.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """Convert a value to Decimal, returning None for blank/NaN/invalid input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if not value:
            return None
    try:
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return None
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return result if result.is_finite() else None


def to_int(value: Any) -> int | None:
    """Convert a value to int, returning None for blank/NaN/invalid input."""
    number = to_decimal(value)
    if number is None:
        return None
    return int(number)


def format_decimal(value: Decimal | int | float | None) -> str:
    """
    Render a number for a CSV cell without exponent or trailing zeros.

    None renders as an empty cell.
    """
    if value is None:
        return ""
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    if number == number.to_integral_value():
        return str(number.quantize(Decimal(1)))
    text = format(number.normalize(), "f")
    return text

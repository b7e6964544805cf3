"""
Row value helpers
Rows are loosely typed field maps; values are one of number, string,
boolean, date/datetime or None. These helpers dispatch on that variant
instead of coercing.
"""
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional


def is_number(value: Any) -> bool:
    """True for int/float values, excluding booleans and NaN"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def is_temporal(value: Any) -> bool:
    return isinstance(value, (date, datetime))


def format_number(value: Any) -> str:
    """
    Render a number the way it reads in a formula or a CSV cell

    Whole floats drop the ".0" and finite floats never use exponent
    notation, so 1e-05 reads "0.00001".
    """
    if not isinstance(value, float):
        return str(value)
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text and math.isfinite(value):
        return format(Decimal(text), "f")
    return text


def to_text(value: Any) -> str:
    """
    Stringify a row value for text matching and export

    Args:
        value: row value

    Returns:
        text form; None becomes "null" and booleans "true"/"false"
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def values_equal(left: Any, right: Any) -> bool:
    """
    Strict equality: values of different kinds never match

    Args:
        left: row value
        right: filter value

    Returns:
        whether both values are of the same kind and equal
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if is_number(left) or is_number(right):
        return False
    if isinstance(left, datetime) != isinstance(right, datetime):
        return False
    return type(left) is type(right) and left == right


def compare(left: Any, right: Any) -> Optional[int]:
    """
    Order two values of the same kind

    Args:
        left: row value
        right: filter value

    Returns:
        -1, 0 or 1, or None when the pair is not comparable
    """
    if is_number(left) and is_number(right):
        pass
    elif isinstance(left, str) and isinstance(right, str):
        pass
    elif isinstance(left, datetime) and isinstance(right, datetime):
        if (left.tzinfo is None) != (right.tzinfo is None):
            return None
    elif (is_temporal(left) and is_temporal(right)
          and not isinstance(left, datetime) and not isinstance(right, datetime)):
        pass
    else:
        return None

    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def group_key(value: Any) -> tuple:
    """Hashable grouping key that keeps True apart from 1"""
    if isinstance(value, bool):
        return ("bool", value)
    if is_number(value):
        return ("number", value)
    if isinstance(value, (list, dict)):
        return ("text", repr(value))
    return (type(value).__name__, value)

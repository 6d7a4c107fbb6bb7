"""Lenient value coercion for delimited telemetry rows."""

import math
from typing import Optional


def safe_float(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    """
    Parse a reading such as "54.3" or " 1850.0 ".

    Blank cells, text and non-finite values (nan, inf) give default.
    """
    if value is None:
        return default
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    return number if math.isfinite(number) else default


def safe_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    """Like safe_float, rounded to the nearest integer ("1850.6" -> 1851)."""
    number = safe_float(value)
    if number is None:
        return default
    return int(round(number))


def clean_str(value: Optional[str]) -> Optional[str]:
    """Trim a cell; blank becomes None."""
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None

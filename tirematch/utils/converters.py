"""Type conversion utilities for loosely-typed upstream payloads.

Airtable returns whatever was typed into a cell and Shopify returns money
as strings. All parsing of those values goes through here.
"""

import re
from typing import Any


def safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert a value to float.

    Args:
        val: Cell or payload value (str, int, float, None, ...)
        default: Returned for missing or unparseable values

    Returns:
        The parsed float, or ``default``

    Examples:
        >>> safe_float("3.14")
        3.14
        >>> safe_float(None)
        0.0
        >>> safe_float("invalid", default=-1.0)
        -1.0
    """
    if val is None or val == "":
        return default
    try:
        return float(val)
    except (ValueError, TypeError):
        return default


def safe_int(val: Any, default: int = 0) -> int:
    """Safely convert a value to int, truncating floats.

    Args:
        val: Cell or payload value (str, int, float, None, ...)
        default: Returned for missing or unparseable values

    Returns:
        The parsed int, or ``default``

    Examples:
        >>> safe_int("42")
        42
        >>> safe_int(3.7)
        3
        >>> safe_int(None)
        0
    """
    if val is None or val == "":
        return default
    try:
        return int(float(val))  # Handle "3.0" -> 3
    except (ValueError, TypeError):
        return default


def optional_float(val: Any) -> float | None:
    """Like safe_float, but keeps "missing" distinct from zero.

    Installer coordinates of 0.0 are real coordinates; only an absent or
    unparseable cell means "no location".

    Args:
        val: Cell value

    Returns:
        The parsed float, or None when the cell is empty or not a number

    Examples:
        >>> optional_float("0")
        0.0
        >>> optional_float("") is None
        True
    """
    if val is None or val == "":
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None


def optional_str(val: Any) -> str | None:
    """Stripped text, or None for missing or blank values.

    Examples:
        >>> optional_str("  recA1 ")
        'recA1'
        >>> optional_str("   ") is None
        True
    """
    if val is None:
        return None
    text = str(val).strip()
    return text or None


def digits_only(val: str) -> str:
    """Strip everything but digits: ``"gid://shopify/ProductVariant/42"`` -> ``"42"``."""
    return re.sub(r"\D", "", val)

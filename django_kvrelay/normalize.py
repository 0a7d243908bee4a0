"""Coercion helpers for loosely-typed configuration and command values."""

from __future__ import annotations

import math
from typing import Any


def is_stringable(value: Any) -> bool:
    """Check if a value is a scalar or defines its own string conversion."""
    if isinstance(value, (str, bytes, int, float)):
        return True
    return type(value).__str__ is not object.__str__


def to_text(value: Any) -> str | None:
    """Convert a scalar/stringable value to text, or None if it is neither."""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if is_stringable(value):
        return str(value)
    return None


def normalize_string(value: Any, default: str = "") -> str:
    """Normalize mixed input to a non-empty string, falling back to default."""
    text = to_text(value)
    if text:
        return text
    return default


def normalize_non_negative_int(value: Any) -> int | None:
    """Normalize mixed values into non-negative integers or None.

    Floats and numeric strings are truncated toward zero, so ``4.7`` and
    ``"4.7"`` both become ``4``. Booleans are rejected.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        normalized = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        normalized = int(value)
    else:
        text = to_text(value)
        if text is None:
            return None
        normalized = _parse_numeric(text.strip())
        if normalized is None:
            return None

    return normalized if normalized >= 0 else None


def _parse_numeric(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)

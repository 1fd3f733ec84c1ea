"""
utils.py

Value coercion and formatting helpers shared by the scene model,
persistence layer and TikZ exporter.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional, Tuple

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def coerce_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """
    Convert a JSON value to a finite float.

    Booleans are rejected so ``true`` never becomes ``1.0``.

    Args:
        value: Raw value (number or numeric string)
        default: Returned when the value is missing or not a finite number

    Returns:
        The float, or *default*
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(numeric):
        return default
    return numeric


def coerce_positive(value: Any, default: Optional[float] = None) -> Optional[float]:
    numeric = coerce_float(value)
    if numeric is None or numeric <= 0:
        return default
    return numeric


def coerce_non_negative(value: Any, default: Optional[float] = None) -> Optional[float]:
    numeric = coerce_float(value)
    if numeric is None or numeric < 0:
        return default
    return numeric


def coerce_bool(value: Any, default: Optional[bool] = None) -> Optional[bool]:
    """Accept real booleans and the strings ``"true"``/``"false"``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == "true":
            return True
        if normalized == "false":
            return False
    return default


def coerce_str(value: Any, default: Optional[str] = None) -> Optional[str]:
    """Return a stripped non-empty string, or *default*."""
    if not isinstance(value, str):
        return default
    stripped = value.strip()
    return stripped or default


def normalize_hex(value: Any) -> Optional[str]:
    """
    Normalize a hex color to ``#rrggbb`` lowercase.

    Three-digit colors are expanded (``#abc`` -> ``#aabbcc``).
    Anything else (named colors, rgba(), garbage) returns None.
    """
    if not isinstance(value, str):
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return "#" + digits


def hex_to_rgb(value: Any) -> Optional[Tuple[int, int, int]]:
    normalized = normalize_hex(value)
    if normalized is None:
        return None
    return (
        int(normalized[1:3], 16),
        int(normalized[3:5], 16),
        int(normalized[5:7], 16),
    )


def format_number(value: float, digits: int = 2) -> str:
    """
    Format a number with at most *digits* decimals, trailing zeros removed.

    ``5.0`` -> ``"5"``, ``0.25`` -> ``"0.25"``, ``-0.001`` -> ``"0"``.
    """
    if not math.isfinite(value):
        return "0"
    text = f"{value:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def normalize_degrees(angle: float) -> float:
    """Wrap an angle in degrees into (-180, 180]."""
    wrapped = math.fmod(angle, 360.0)
    if wrapped <= -180:
        wrapped += 360
    elif wrapped > 180:
        wrapped -= 360
    return wrapped

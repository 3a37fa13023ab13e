from __future__ import annotations

import math
import numbers
import re
from typing import Any

"""Locale tolerant numeric parsing for reading / difference cells."""

__all__ = [
    "parse_number",
]

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-,]")
_THOUSANDS_RE = re.compile(r"^-?\d{1,3}(,\d{3})+$")


def _normalize_separators(cleaned: str) -> str:
    has_comma = "," in cleaned
    has_dot = "." in cleaned
    if has_comma and has_dot:
        # 後に出現する記号を小数点とみなす ("1,234.5" / "1.234,5")
        if cleaned.rfind(",") > cleaned.rfind("."):
            return cleaned.replace(".", "").replace(",", ".")
        return cleaned.replace(",", "")
    if has_comma:
        if cleaned.count(",") > 1:
            # "1,234,567" -> thousands separators only; "1,,2" stays malformed
            if _THOUSANDS_RE.match(cleaned):
                return cleaned.replace(",", "")
            return cleaned
        return cleaned.replace(",", ".")
    return cleaned


def parse_number(raw: Any) -> float | int | None:
    """Parse a numeric cell value.

    Returns ``None`` for empty or unparseable input; never raises and never
    returns NaN. Numeric input is returned unchanged (numpy scalars are
    converted to the matching Python type).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        value = raw.item() if hasattr(raw, "item") else raw
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value

    s = str(raw).strip()
    if not s:
        return None
    cleaned = _normalize_separators(_NON_NUMERIC_RE.sub("", s))
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    if "." not in cleaned and value.is_integer():
        return int(value)
    return value

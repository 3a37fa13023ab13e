from __future__ import annotations

import math
import numbers
import re
import warnings
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pandas as pd

"""Posting date normalization.

Uploaded sheets carry posting dates in whatever shape the user typed or the
spreadsheet program stored: ISO strings, DD-MM-YYYY / DD/MM/YYYY / DD.MM.YYYY,
eight-digit strings, spreadsheet serial numbers, OData ``/Date(ms)/`` wrappers
or free text. ``parse_to_canonical`` turns all of them into a ``datetime.date``;
``render`` produces the three string forms used by the display and the API.

Failure rendering differs per call site:
- display path (``to_display_date``): ``INVALID_DATE_MARKER`` for empty and invalid input
- payload path (``to_payload_date``): today for empty input, ``None`` for invalid input
"""

__all__ = [
    "INVALID_DATE_MARKER",
    "SERIAL_EPOCH",
    "DATE_FORMATS",
    "parse_to_canonical",
    "render",
    "to_display_date",
    "to_payload_date",
]

INVALID_DATE_MARKER = "Invalid Format use DD-MM-YYYY"

# Day 0 of the spreadsheet serial calendar. Serial 1 = 1900-01-01.
# Overridable via config (upload.serial_epoch).
SERIAL_EPOCH = date(1899, 12, 31)
# Serials above this include the non-existent 1900-02-29.
_SERIAL_LEAP_BUG_LIMIT = 59

DATE_FORMATS = ("YYYYMMDD", "YYYY-MM-DD", "DD-MM-YYYY")

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE_WRAPPER_RE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")
_DMY_RE = re.compile(r"^(\d{2})[-/](\d{2})[-/](\d{4})$")
_DOTTED_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
_EIGHT_DIGITS_RE = re.compile(r"^\d{8}$")
_SERIAL_RE = re.compile(r"^\d+$")
_YEAR_FIRST_RE = re.compile(r"^\d{4}\D")
_HAS_YEAR_RE = re.compile(r"\d{4}")
_MONTH_NAME_RE = re.compile(r"jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec", re.IGNORECASE)


def _is_blank(raw: Any) -> bool:
    if raw is None or raw is pd.NaT:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    if isinstance(raw, str) and not raw.strip():
        return True
    return False


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(serial: int, epoch: date) -> date | None:
    if serial > _SERIAL_LEAP_BUG_LIMIT:
        serial -= 1
    try:
        return epoch + timedelta(days=serial)
    except OverflowError:
        return None


def _from_eight_digits(s: str) -> date | None:
    day, month = int(s[0:2]), int(s[2:4])
    if 1 <= day <= 31 and 1 <= month <= 12:
        # DDMMYYYY
        return _safe_date(int(s[4:8]), month, day)
    # YYYYMMDD
    return _safe_date(int(s[0:4]), int(s[4:6]), int(s[6:8]))


def _generic_parse(s: str) -> date | None:
    # 時刻だけの文字列を今日の日付にしない
    if not (_HAS_YEAR_RE.search(s) or _MONTH_NAME_RE.search(s)):
        return None
    year_first = bool(_YEAR_FIRST_RE.match(s))
    with warnings.catch_warnings():
        # pandas warns when it has to guess the format
        warnings.simplefilter("ignore")
        try:
            ts = pd.to_datetime(s, dayfirst=not year_first, yearfirst=year_first, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is pd.NaT or pd.isna(ts):
        return None
    return ts.date()


def parse_to_canonical(raw: Any, *, epoch: date = SERIAL_EPOCH) -> date | None:
    """Parse a posting date of unknown shape.

    Returns ``None`` for empty input and for input that matches no known
    shape; callers pick the rendering of both cases.

    Precedence: ISO, ``/Date(ms)/``, DD-MM-YYYY or DD/MM/YYYY, DD.MM.YYYY,
    eight digits (DDMMYYYY when the first four digits form a valid day and
    month, YYYYMMDD otherwise), spreadsheet serial, free-form.
    """
    if _is_blank(raw):
        return None
    # openpyxl が日付セルを datetime で返すケース
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        if not math.isfinite(raw) or raw < 0:
            return None
        # serial with a time fraction -> day part only
        s = str(int(raw))
    else:
        s = str(raw).strip()

    m = _ISO_RE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _DATE_WRAPPER_RE.match(s)
    if m:
        try:
            return datetime.fromtimestamp(int(m.group(1)) / 1000, tz=UTC).date()
        except (OverflowError, OSError, ValueError):
            return None

    m = _DMY_RE.match(s) or _DOTTED_RE.match(s)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    if _EIGHT_DIGITS_RE.match(s):
        return _from_eight_digits(s)

    if _SERIAL_RE.match(s):
        return _from_serial(int(s), epoch)

    return _generic_parse(s)


def render(value: date, fmt: str) -> str:
    """Render a canonical date as ``YYYYMMDD``, ``YYYY-MM-DD`` or ``DD-MM-YYYY``."""
    if fmt == "YYYYMMDD":
        return f"{value.year:04d}{value.month:02d}{value.day:02d}"
    if fmt == "YYYY-MM-DD":
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if fmt == "DD-MM-YYYY":
        return f"{value.day:02d}-{value.month:02d}-{value.year:04d}"
    raise ValueError(f"unsupported date format: {fmt!r} (expected one of {DATE_FORMATS})")


def to_display_date(raw: Any, *, epoch: date = SERIAL_EPOCH) -> str:
    """Display conversion: ``DD-MM-YYYY`` or the invalid-format marker."""
    parsed = parse_to_canonical(raw, epoch=epoch)
    if parsed is None:
        return INVALID_DATE_MARKER
    return render(parsed, "DD-MM-YYYY")


def to_payload_date(raw: Any, *, today: date | None = None, epoch: date = SERIAL_EPOCH) -> str | None:
    """API conversion: ``YYYY-MM-DD``; today when empty, ``None`` when unparseable."""
    if _is_blank(raw):
        return render(today or date.today(), "YYYY-MM-DD")
    parsed = parse_to_canonical(raw, epoch=epoch)
    if parsed is None:
        return None
    return render(parsed, "YYYY-MM-DD")

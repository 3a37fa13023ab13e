from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from ..models.canonical_row import CanonicalRow
from ..normalize.dates import SERIAL_EPOCH, to_display_date
from ..normalize.numeric import parse_number

logger = logging.getLogger(__name__)

"""Raw spreadsheet row -> CanonicalRow mapping.

Uploaded files do not share a fixed header set, so every logical field is
looked up through a declared alias list. Lookup is case-sensitive and the
first alias holding a non-empty value wins; later aliases are ignored even
when they also carry a value.
"""

__all__ = [
    "FIELD_ALIASES",
    "lookup_alias",
    "map_row",
    "map_rows",
]

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "measuring_point": ("Measuring Point", "MeasuringPoint", "Measuring point", "Measuring_Point", "Equipment"),
    "reading": ("Reading", "MeasurementReading", "MeasurementCounterReading", "Counter", "Value"),
    "difference": ("Difference", "MsmtCounterReadingDifference", "CounterDifference"),
    "posting_date": (
        "Posting Date",
        "MsmtRdngDate",
        "Date",
        "PostingDate",
        "Posting Date (DD-MM-YYYY)",
        "Posting Date (MM-DD-YYYY)",
        "Posting Date(DD-MM-YYYY)",
        "PostingDate(DD-MM-YYYY)",
    ),
    "document_text": ("MeasurementDocumentText", "Text", "LongText", "note"),
    "read_by": ("Read By", "ReadBy", "Ready By", "ReadyBy", "MsmtRdngByUser", "User"),
    "status_code": ("MsmtRdngStatus", "Status"),
    "done_after_task": ("MsmtIsDoneAfterTaskCompltn", "MsmtIsDoneAfterTaskCompletion", "IsDoneAfterTask"),
}

_TRUE_STRINGS = {"X", "TRUE", "YES", "Y", "1"}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def _as_text(value: Any) -> str:
    if _is_empty(value):
        return ""
    # 数値セル (10001.0 など) を整数表記に戻す
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _as_flag(value: Any) -> bool:
    if _is_empty(value):
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().upper() in _TRUE_STRINGS


def lookup_alias(raw_row: Mapping[str, Any], aliases: Iterable[str]) -> Any | None:
    """Return the value of the first alias present with a non-empty value."""
    for name in aliases:
        if name in raw_row and not _is_empty(raw_row[name]):
            return raw_row[name]
    return None


def map_row(raw_row: Mapping[str, Any], row_number: int, *, epoch: date = SERIAL_EPOCH) -> CanonicalRow:
    """Map one raw row to a CanonicalRow (no filtering, no enrichment)."""
    mp = lookup_alias(raw_row, FIELD_ALIASES["measuring_point"])
    reading_raw = lookup_alias(raw_row, FIELD_ALIASES["reading"])
    difference_raw = lookup_alias(raw_row, FIELD_ALIASES["difference"])
    posting_raw = lookup_alias(raw_row, FIELD_ALIASES["posting_date"])
    status_raw = lookup_alias(raw_row, FIELD_ALIASES["status_code"])

    difference = parse_number(difference_raw)
    return CanonicalRow(
        row_number=row_number,
        measuring_point=_as_text(mp),
        reading=parse_number(reading_raw),
        difference=difference,
        difference_entered=difference is not None,
        posting_date_raw=posting_raw,
        posting_date_display=to_display_date(posting_raw, epoch=epoch),
        document_text=_as_text(lookup_alias(raw_row, FIELD_ALIASES["document_text"])),
        read_by=_as_text(lookup_alias(raw_row, FIELD_ALIASES["read_by"])),
        status_code=_as_text(status_raw) or None,
        done_after_task=_as_flag(lookup_alias(raw_row, FIELD_ALIASES["done_after_task"])),
    )


def _is_blank_row(row: CanonicalRow) -> bool:
    return not row.measuring_point and row.reading is None and not row.document_text


def map_rows(raw_rows: Iterable[Mapping[str, Any]], *, epoch: date = SERIAL_EPOCH) -> list[CanonicalRow]:
    """Map all rows, then drop blank/decorative rows.

    A row is dropped when measuring point, reading and document text are all
    absent. Row numbers refer to the position in ``raw_rows`` (1-based) so they
    stay stable after filtering.
    """
    mapped = [map_row(raw, idx, epoch=epoch) for idx, raw in enumerate(raw_rows, start=1)]
    kept = [row for row in mapped if not _is_blank_row(row)]
    if len(kept) != len(mapped):
        logger.debug("dropped %d blank rows of %d", len(mapped) - len(kept), len(mapped))
    return kept

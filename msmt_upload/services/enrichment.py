from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..models.canonical_row import DEFAULT_UOM, CanonicalRow
from ..models.lookup_result import LookupResult

logger = logging.getLogger(__name__)

"""Row enrichment from the measuring point lookup service.

Lookups run one row at a time with no cache: a measuring point that appears
twice is looked up twice. A failed lookup never blocks submission, the row
just carries placeholder values.
"""

__all__ = [
    "NOT_FOUND_TEXT",
    "ERROR_TEXT",
    "enrich_row",
    "enrich_rows",
]

NOT_FOUND_TEXT = "Not found"
ERROR_TEXT = "Error"

LookupFn = Callable[[str], LookupResult]


def enrich_row(row: CanonicalRow, lookup: LookupFn, *, default_uom: str = DEFAULT_UOM) -> None:
    """Fill description / position number / unit of one row in place."""
    try:
        result = lookup(row.measuring_point)
    except Exception as e:
        logger.warning("lookup failed row=%d mp=%s: %s", row.row_number, row.measuring_point, e)
        row.description = ERROR_TEXT
        row.position_number = ""
        row.unit_of_measure = default_uom
        return

    if result.found:
        row.description = result.description or ""
        row.position_number = result.position_number or ""
        row.unit_of_measure = result.unit_of_measure or default_uom
    else:
        logger.debug("measuring point not found row=%d mp=%s reason=%s", row.row_number, row.measuring_point, result.error)
        row.description = NOT_FOUND_TEXT
        row.position_number = ""
        row.unit_of_measure = default_uom


def enrich_rows(rows: Iterable[CanonicalRow], lookup: LookupFn, *, default_uom: str = DEFAULT_UOM) -> None:
    """Enrich every row sequentially (in place)."""
    for row in rows:
        enrich_row(row, lookup, default_uom=default_uom)

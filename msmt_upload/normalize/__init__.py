"""Pure normalizers for spreadsheet cell values."""

from .dates import (
    INVALID_DATE_MARKER,
    SERIAL_EPOCH,
    parse_to_canonical,
    render,
    to_display_date,
    to_payload_date,
)
from .numeric import parse_number

__all__ = [
    "INVALID_DATE_MARKER",
    "SERIAL_EPOCH",
    "parse_to_canonical",
    "render",
    "to_display_date",
    "to_payload_date",
    "parse_number",
]

from __future__ import annotations

from datetime import date, datetime

from ..models.canonical_row import CanonicalRow
from ..models.payload import MeasurementPayload
from ..normalize.dates import SERIAL_EPOCH, to_payload_date

"""CanonicalRow -> MeasurementPayload.

Decision rule:
- difference present -> difference mode (flag True, no MeasurementReading)
- else reading present -> reading mode (flag False, no difference field)
- else minimal payload (flag False, no value); the API rejects it and that
  rejection is the validation path, there is no client-side required-field check
"""

__all__ = [
    "DEFAULT_DOCUMENT_TEXT",
    "DEFAULT_READ_BY",
    "DEFAULT_READING_STATUS",
    "build_payload",
]

DEFAULT_DOCUMENT_TEXT = "Reading Taken"
DEFAULT_READ_BY = "USER"
DEFAULT_READING_STATUS = "1"


def build_payload(row: CanonicalRow, now: datetime | None = None, *, epoch: date = SERIAL_EPOCH) -> MeasurementPayload:
    """Build the creation request body for one row.

    ``now`` is the wall clock used for ``MsmtRdngTime`` and for the empty
    posting date default; it defaults to the current local time.
    An unparseable posting date leaves ``MsmtRdngDate`` unset (omitted on the wire).
    """
    now = now or datetime.now()
    posting_date = to_payload_date(row.posting_date_raw, today=now.date(), epoch=epoch)

    common = dict(
        MeasuringPoint=row.measuring_point,
        MsmtRdngDate=posting_date,
        MsmtRdngTime=now.strftime("%H:%M:%S"),
        MsmtRdngStatus=row.status_code or DEFAULT_READING_STATUS,
        MeasurementDocumentText=row.document_text or DEFAULT_DOCUMENT_TEXT,
        MsmtRdngByUser=row.read_by or DEFAULT_READ_BY,
        MsmtIsDoneAfterTaskCompltn=bool(row.done_after_task),
        MeasurementReadingEntryUoM=row.unit_of_measure or None,
    )

    if row.difference is not None:
        return MeasurementPayload(
            **common,
            MsmtCntrReadingDiffIsEntered=True,
            MsmtCounterReadingDifference=row.difference,
        )
    if row.reading is not None:
        return MeasurementPayload(
            **common,
            MsmtCntrReadingDiffIsEntered=False,
            MeasurementReading=row.reading,
        )
    return MeasurementPayload(**common, MsmtCntrReadingDiffIsEntered=False)

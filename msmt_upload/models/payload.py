from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

"""Wire record for the measurement document creation API."""

__all__ = [
    "MeasurementPayload",
]


@dataclass(frozen=True)
class MeasurementPayload:
    """Request body for one measurement document.

    Attribute names are the API property names. Fields left as ``None`` are
    omitted by :meth:`to_wire`, the API never receives an explicit null.
    """
    MeasuringPoint: str
    MsmtRdngDate: str | None               # YYYY-MM-DD, None when the posting date is unparseable
    MsmtRdngTime: str                      # HH:MM:SS, wall clock at build time
    MsmtRdngStatus: str
    MeasurementDocumentText: str
    MsmtRdngByUser: str
    MsmtIsDoneAfterTaskCompltn: bool
    MsmtCntrReadingDiffIsEntered: bool
    MeasurementReadingEntryUoM: str | None = None
    MeasurementReading: float | None = None
    MsmtCounterReadingDifference: float | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict, dropping undefined fields."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[f.name] = value
        return out

    @property
    def logged_value(self) -> float | str:
        """Value recorded in the outcome log for this payload."""
        if self.MeasurementReading is not None:
            return self.MeasurementReading
        if self.MsmtCounterReadingDifference is not None:
            return self.MsmtCounterReadingDifference
        return ""

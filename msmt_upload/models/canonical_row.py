from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

"""CanonicalRow model and UploadStatus enum for the measurement reading upload tool.

A CanonicalRow is the result of alias resolution, numeric coercion and date
normalization of a single spreadsheet row. It is created once at import time;
only the enrichment fields and ``upload_status`` change afterwards.
"""

__all__ = [
    "CanonicalRow",
    "UploadStatus",
    "DEFAULT_UOM",
]

DEFAULT_UOM = "H"


class UploadStatus(Enum):
    """Per-row feedback state during submission.

    State transitions: pending → validating → uploading → (success | failed)
    """
    PENDING = "pending"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class CanonicalRow:
    """Normalized spreadsheet row.

    ``difference`` takes precedence over ``reading`` whenever both are set.
    """
    row_number: int                       # 1-based data row in the uploaded sheet
    measuring_point: str = ""
    reading: float | None = None
    difference: float | None = None
    difference_entered: bool = False
    posting_date_raw: Any | None = None   # 監査用に元の値を保持
    posting_date_display: str = ""        # DD-MM-YYYY or invalid marker
    document_text: str = ""
    read_by: str = ""
    status_code: str | None = None        # optional MsmtRdngStatus column
    done_after_task: bool = False
    # enrichment (lookup service)
    description: str = ""
    position_number: str = ""
    unit_of_measure: str = ""
    upload_status: UploadStatus = UploadStatus.PENDING

    def as_display_dict(self) -> dict[str, Any]:
        """Row values keyed by column preference key (used for the review table)."""
        return {
            "RowNumber": self.row_number,
            "MeasuringPoint": self.measuring_point,
            "Description": self.description,
            "PositionNumber": self.position_number,
            "Reading": "" if self.reading is None else self.reading,
            "Difference": "" if self.difference is None else self.difference,
            "UoM": self.unit_of_measure,
            "PostingDate": self.posting_date_display,
            "Text": self.document_text,
            "ReadBy": self.read_by,
            "Status": self.upload_status.value,
        }

"""Domain models for the measurement reading mass upload tool.

This package contains the dataclasses shared by the normalizers, the
submission pipeline and the CLI.
"""

from .canonical_row import DEFAULT_UOM, CanonicalRow, UploadStatus
from .log_entry import STATE_FAILED, STATE_SKIPPED, STATE_SUCCESS, LogEntry
from .lookup_result import LookupResult
from .payload import MeasurementPayload
from .submission_result import SubmissionResult

__all__ = [
    # Row models
    "CanonicalRow",
    "UploadStatus",
    "DEFAULT_UOM",
    # Wire models
    "MeasurementPayload",
    "LookupResult",
    # Outcome models
    "LogEntry",
    "STATE_FAILED",
    "STATE_SKIPPED",
    "STATE_SUCCESS",
    "SubmissionResult",
]

"""Remote service clients (lookup + measurement document creation)."""

from .api import CreationResponse, MeasurementDocumentClient
from .errors import ApiError, SubmissionError, extract_error_message

__all__ = [
    "ApiError",
    "CreationResponse",
    "MeasurementDocumentClient",
    "SubmissionError",
    "extract_error_message",
]

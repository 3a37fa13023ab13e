from __future__ import annotations

import json
import re
from typing import Any

"""Human readable messages from the creation service error envelopes.

Known shapes, tried in order:
1. ``{"SAP__Messages": [{"Message": ...}]}``
2. ``{"error": {"message": "..." | {"value": ...} | {"Message": ...}}}``
3. ``{"error": {"innererror": {"errordetails" | "ErrorDetails": [{...}]}}}``
4. regex on the raw text (``"message": "..."`` / ``MessageText: '...'``)
5. raw text: as-is when short, first sentence when short, else truncated
"""

__all__ = [
    "ApiError",
    "SubmissionError",
    "extract_error_message",
    "MAX_RAW_MESSAGE_LENGTH",
]

MAX_RAW_MESSAGE_LENGTH = 600
_SHORT_TEXT_LIMIT = 400
UNKNOWN_ERROR = "Unknown error from server"

_MESSAGE_RE = re.compile(r'"message"\s*:\s*"([^"]+)"', re.IGNORECASE)
_MESSAGE_TEXT_RE = re.compile(r"""MessageText['"]?\s*[:=]\s*["']([^"']+)["']""", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[\r\n.]{1,2}")


class ApiError(Exception):
    """Base exception for remote service errors."""


class SubmissionError(ApiError):
    """Raised when a measurement document could not be created.

    ``str(exc)`` is the message written to the outcome log.
    """
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _first_message(item: Any, *keys: str) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in keys:
            value = item.get(key)
            if value:
                return str(value)
    return json.dumps(item, ensure_ascii=False)


def _from_body(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None

    messages = body.get("SAP__Messages")
    if isinstance(messages, list) and messages:
        return _first_message(messages[0], "Message", "MessageText")

    error = body.get("error")
    if not isinstance(error, dict):
        return None

    message = error.get("message")
    if isinstance(message, str) and message:
        return message
    if isinstance(message, dict):
        if message.get("value"):
            return str(message["value"])
        if message.get("Message"):
            return str(message["Message"])

    inner = error.get("innererror")
    if isinstance(inner, dict):
        for key in ("errordetails", "ErrorDetails"):
            details = inner.get(key)
            if isinstance(details, list) and details:
                return _first_message(details[0], "message", "Message", "messageValue")
    return None


def _from_text(text: str) -> str | None:
    m = _MESSAGE_RE.search(text)
    if m:
        return m.group(1)
    m = _MESSAGE_TEXT_RE.search(text)
    if m:
        return m.group(1)
    trimmed = text.strip()
    if len(trimmed) < _SHORT_TEXT_LIMIT:
        return trimmed
    first = _SENTENCE_SPLIT_RE.split(trimmed)[0]
    if first and len(first) < _SHORT_TEXT_LIMIT:
        return first + "..."
    return None


def extract_error_message(body: Any, text: str | None) -> str:
    """Best effort extraction of the server's error message.

    Args:
        body: Parsed JSON body (or None / the raw text when it was not JSON)
        text: Raw response text

    Returns:
        Message suitable for the outcome log, never longer than
        ``MAX_RAW_MESSAGE_LENGTH`` plus the ``...`` marker for raw text
    """
    try:
        message = _from_body(body)
        if message:
            return message
        if isinstance(text, str) and text:
            message = _from_text(text)
            if message:
                return message
    except (TypeError, ValueError, AttributeError):
        pass
    if isinstance(text, str) and text:
        suffix = "..." if len(text) > MAX_RAW_MESSAGE_LENGTH else ""
        return text[:MAX_RAW_MESSAGE_LENGTH] + suffix
    return UNKNOWN_ERROR

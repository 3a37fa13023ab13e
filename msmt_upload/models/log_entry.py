from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""LogEntry model for the upload outcome log.

One LogEntry is created per submission attempt and never changes afterwards.
The JSON Lines export keeps a fixed key set so downstream tooling can rely on it.
"""

__all__ = [
    "LogEntry",
    "STATE_FAILED",
    "STATE_SKIPPED",
    "STATE_SUCCESS",
]

STATE_FAILED = "FAILED"
STATE_SKIPPED = "SKIPPED"
STATE_SUCCESS = "SUCCESS"


@dataclass(frozen=True)
class LogEntry:
    """Outcome of one row submission.

    Attributes:
        equipment: Measuring point of the submitted row
        value: Reading (or difference) that was sent
        error_text: Server/client message, ``SUCCESS - Doc: ...`` on success
        state: FAILED | SKIPPED | SUCCESS
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
    """
    equipment: str
    value: str | float
    error_text: str
    state: str
    timestamp: str

    @staticmethod
    def create(equipment: str, value: str | float, error_text: str, state: str = STATE_FAILED) -> LogEntry:
        """Create a new LogEntry stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return LogEntry(
            equipment=equipment or "",
            value=value,
            error_text=error_text or "",
            state=state or STATE_FAILED,
            timestamp=ts,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON Lines record."""
        return json.dumps(asdict(self), ensure_ascii=False)

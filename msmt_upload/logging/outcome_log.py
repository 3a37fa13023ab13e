from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.log_entry import STATE_FAILED, STATE_SKIPPED, STATE_SUCCESS, LogEntry

"""Upload outcome log.

- 1 submission attempt = 1 LogEntry, append only
- severity sort: FAILED < SKIPPED < SUCCESS < unknown, ties newest first
- optional JSON Lines export to ``logs/uploads-YYYYMMDD-HHMMSS.log`` (UTC)
"""

__all__ = [
    "LogEntry",
    "OutcomeLog",
    "SEVERITY_RANK",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

SEVERITY_RANK = {
    STATE_FAILED: 0,
    STATE_SKIPPED: 1,
    STATE_SUCCESS: 2,
}
_UNKNOWN_RANK = 3


def _rank(entry: LogEntry) -> int:
    return SEVERITY_RANK.get(entry.state, _UNKNOWN_RANK)


def _epoch_seconds(entry: LogEntry) -> float:
    try:
        return datetime.fromisoformat(entry.timestamp.replace("Z", "+00:00")).timestamp()
    except (AttributeError, ValueError):
        return 0.0


class OutcomeLog:
    """In-memory, append-only list of LogEntry.

    Single writer (the submission pipeline); no thread safety needed.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._entries: list[LogEntry] = []
        self._logs_dir = logs_dir or LOGS_DIR
        self._file_path: Path | None = None
        self._flushed = 0  # 書き出し済み件数

    @property
    def entries(self) -> list[LogEntry]:
        """Entries in insertion order (copy)."""
        return list(self._entries)

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"uploads-{stamp}.log"
        return self._file_path

    def append(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()
        self._flushed = 0

    def __len__(self) -> int:
        return len(self._entries)

    def sorted_by_state(self, descending: bool = False) -> list[LogEntry]:
        """Return entries ordered by severity rank.

        Ascending puts FAILED first. Entries with the same rank are ordered
        newest first in both directions; remaining ties have no defined order.
        """
        sign = -1 if descending else 1
        return sorted(self._entries, key=lambda e: (sign * _rank(e), -_epoch_seconds(e)))

    def counts(self) -> dict[str, int]:
        """Number of entries per state."""
        counts = {state: 0 for state in SEVERITY_RANK}
        for e in self._entries:
            counts[e.state] = counts.get(e.state, 0) + 1
        return counts

    def flush(self, path: Path | None = None) -> Path:
        """Append entries not yet written as JSON Lines and return the file path.

        Entries stay in memory; use :meth:`clear` to reset the log.
        """
        fp = path or self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        pending = self._entries[self._flushed:]
        with fp.open("a", encoding="utf-8") as f:
            for entry in pending:
                f.write(entry.to_json_line() + "\n")
        self._flushed = len(self._entries)
        return fp

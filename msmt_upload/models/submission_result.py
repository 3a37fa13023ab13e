from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Aggregated result of one submission batch (SUMMARY line input)."""


@dataclass(frozen=True)
class SubmissionResult:
    """Counters and timing for a submit_all() run."""
    selected_rows: int  # 選択された行数
    attempted_rows: int  # 実際に送信を試みた行数
    success_rows: int
    failed_rows: int
    skipped_rows: int  # キャンセルで未送信
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    cancelled: bool = False

    @property
    def all_succeeded(self) -> bool:
        return self.failed_rows == 0 and self.skipped_rows == 0

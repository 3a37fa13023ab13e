from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress for the submission pipeline.

The bar is only drawn on a TTY; counters are kept either way so the
pipeline can read them back. A cancelled batch leaves the bar short of
its total, the bar is closed as-is.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]

BAR_FORMAT = "{desc} {n_fmt}/{total_fmt} |{bar}| {postfix}"


def is_tty_enabled() -> bool:
    """Return True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Per-row progress with success / failed counters."""

    def __init__(self, total_rows: int, *, description: str = "Uploading rows") -> None:
        self.total_rows = total_rows
        self.description = description
        self.current_row = 0
        self.succeeded = 0
        self.failed = 0
        self.current_point: str | None = None  # 送信中の測定点

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled and total_rows > 0:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
                bar_format=BAR_FORMAT,
            )

    @property
    def finished_rows(self) -> int:
        return self.succeeded + self.failed

    def start_row(self, measuring_point: str) -> None:
        """Mark the start of one row submission."""
        self.current_row += 1
        self.current_point = measuring_point or "-"
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({self.current_point})")

    def finish_row(self, success: bool) -> None:
        """Count the outcome of the row in flight and advance the bar."""
        if success:
            self.succeeded += 1
        else:
            self.failed += 1
        self.current_point = None
        if self.pbar is not None:
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed, refresh=False)
            self.pbar.set_description(self.description, refresh=False)
            self.pbar.update(1)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

from __future__ import annotations

from ..models.submission_result import SubmissionResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={attempted}/{selected} success={success} failed={failed}
skipped={skipped} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for tiny values
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: SubmissionResult) -> str:
    """Render the SUMMARY line for a submission batch.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2025, 9, 22, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2025, 9, 22, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = SubmissionResult(
        ...     selected_rows=3, attempted_rows=3, success_rows=2, failed_rows=1,
        ...     skipped_rows=0, start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY rows=3/3 success=2 failed=1 skipped=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.attempted_rows}/{result.selected_rows} "
        f"success={result.success_rows} "
        f"failed={result.failed_rows} "
        f"skipped={result.skipped_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )

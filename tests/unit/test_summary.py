from __future__ import annotations

from datetime import UTC, datetime

import pytest

from msmt_upload.models.submission_result import SubmissionResult
from msmt_upload.services.summary import render_summary_line

START = datetime(2025, 9, 22, 10, 0, 0, tzinfo=UTC)


def _result(**kwargs) -> SubmissionResult:
    base = dict(
        selected_rows=3,
        attempted_rows=3,
        success_rows=2,
        failed_rows=1,
        skipped_rows=0,
        start_time=START,
        end_time=START,
        elapsed_seconds=2.0,
    )
    base.update(kwargs)
    return SubmissionResult(**base)


def test_render_summary_line():
    assert render_summary_line(_result()) == "SUMMARY rows=3/3 success=2 failed=1 skipped=0 elapsed_sec=2"


@pytest.mark.parametrize(
    "elapsed, expected",
    [
        (0.0, "0"),
        (1.5, "1.5"),
        (0.4567, "0.457"),
        (0.000123, "0.000123"),
    ],
)
def test_elapsed_formatting(elapsed, expected):
    assert render_summary_line(_result(elapsed_seconds=elapsed)).endswith(f"elapsed_sec={expected}")


def test_cancelled_batch_counts():
    line = render_summary_line(_result(attempted_rows=1, success_rows=1, failed_rows=0, skipped_rows=2))
    assert line.startswith("SUMMARY rows=1/3 success=1 failed=0 skipped=2 ")

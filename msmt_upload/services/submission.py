from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from ..client.errors import SubmissionError
from ..logging.outcome_log import OutcomeLog
from ..models.canonical_row import CanonicalRow, UploadStatus
from ..models.log_entry import STATE_FAILED, STATE_SKIPPED, STATE_SUCCESS, LogEntry
from ..models.payload import MeasurementPayload
from ..models.submission_result import SubmissionResult
from .payload_builder import build_payload
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

"""Sequential submission pipeline.

Rows are sent strictly one after another: row i+1 starts only after row i's
request and the fixed inter-row delay have completed, whatever the outcome.
Each attempt produces exactly one LogEntry; a failing row never stops the
batch. There is no automatic retry; re-submitting is a user action.

Cancellation is checked between rows only, a row already in flight always
completes. Rows not started because of a cancel are logged as SKIPPED.
"""

__all__ = [
    "CANCELLED_TEXT",
    "DEFAULT_DELAY_SECONDS",
    "CancelToken",
    "submit_all",
]

DEFAULT_DELAY_SECONDS = 0.15
CANCELLED_TEXT = "Cancelled before submission"

SubmitOne = Callable[[MeasurementPayload], Any]
BuildPayload = Callable[[CanonicalRow], MeasurementPayload]


class CancelToken:
    """Thread-safe cancel flag checked by the pipeline before each row."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _row_value(row: CanonicalRow) -> float | str:
    if row.difference is not None:
        return row.difference
    if row.reading is not None:
        return row.reading
    return ""


def _submit_row(
    row: CanonicalRow,
    submit_one: SubmitOne,
    outcome_log: OutcomeLog,
    build: BuildPayload,
) -> bool:
    """Submit one row, record the outcome. Never raises for row-level failures."""
    row.upload_status = UploadStatus.VALIDATING
    payload: MeasurementPayload | None = None
    try:
        payload = build(row)
        row.upload_status = UploadStatus.UPLOADING
        response = submit_one(payload)
    except SubmissionError as e:
        row.upload_status = UploadStatus.FAILED
        logger.warning("row=%d mp=%s failed: %s", row.row_number, row.measuring_point, e)
        outcome_log.append(LogEntry.create(row.measuring_point, _value_of(payload, row), str(e), STATE_FAILED))
        return False
    except Exception as e:
        row.upload_status = UploadStatus.FAILED
        logger.warning("row=%d mp=%s client exception: %s", row.row_number, row.measuring_point, e)
        outcome_log.append(
            LogEntry.create(row.measuring_point, _value_of(payload, row), f"Client exception: {e}", STATE_FAILED)
        )
        return False

    row.upload_status = UploadStatus.SUCCESS
    message = getattr(response, "message", None) or "SUCCESS"
    logger.debug("row=%d mp=%s %s", row.row_number, row.measuring_point, message)
    outcome_log.append(LogEntry.create(payload.MeasuringPoint, payload.logged_value, message, STATE_SUCCESS))
    return True


def _value_of(payload: MeasurementPayload | None, row: CanonicalRow) -> float | str:
    if payload is not None:
        return payload.logged_value
    return _row_value(row)


def submit_all(
    rows: Iterable[CanonicalRow],
    submit_one: SubmitOne,
    outcome_log: OutcomeLog,
    *,
    build: BuildPayload = build_payload,
    delay: float = DEFAULT_DELAY_SECONDS,
    cancel: CancelToken | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SubmissionResult:
    """Submit rows in order, one at a time.

    Args:
        rows: Selected rows, in submission order
        submit_one: Sends one payload; returns a response (optionally with a
            ``message`` attribute) or raises on failure
        outcome_log: Receives one LogEntry per attempt
        build: Payload builder (injectable for tests / fixed clocks)
        delay: Pause after every attempt, success or failure
        cancel: Optional token checked before each row
        sleep: Delay function (injectable for tests)

    Returns:
        SubmissionResult with per-state counters
    """
    selected = list(rows)
    start_time = datetime.now(UTC)
    skipped = 0
    cancelled = False

    with ProgressTracker(len(selected), description="Uploading rows") as progress:
        for index, row in enumerate(selected):
            if cancel is not None and cancel.cancelled:
                cancelled = True
                for rest in selected[index:]:
                    outcome_log.append(
                        LogEntry.create(rest.measuring_point, _row_value(rest), CANCELLED_TEXT, STATE_SKIPPED)
                    )
                    skipped += 1
                logger.warning("submission cancelled, %d rows not started", skipped)
                break

            progress.start_row(row.measuring_point)
            ok = _submit_row(row, submit_one, outcome_log, build)
            progress.finish_row(success=ok)
            # 固定ウェイト (API への負荷抑制)
            sleep(delay)

    end_time = datetime.now(UTC)
    return SubmissionResult(
        selected_rows=len(selected),
        attempted_rows=progress.finished_rows,
        success_rows=progress.succeeded,
        failed_rows=progress.failed,
        skipped_rows=skipped,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        cancelled=cancelled,
    )

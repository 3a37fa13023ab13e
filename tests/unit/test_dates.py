from __future__ import annotations

import math
from datetime import date, datetime

import pandas as pd
import pytest

from msmt_upload.normalize.dates import (
    INVALID_DATE_MARKER,
    SERIAL_EPOCH,
    parse_to_canonical,
    render,
    to_display_date,
    to_payload_date,
)


@pytest.mark.parametrize(
    "raw",
    [
        "2025-09-22",
        "22-09-2025",
        "22/09/2025",
        "22.09.2025",
        "22092025",
        "20250922",
        "/Date(1758499200000)/",
        " 22-09-2025 ",
    ],
)
def test_parse_known_shapes(raw):
    """All accepted textual shapes resolve to the same calendar date."""
    assert parse_to_canonical(raw) == date(2025, 9, 22)


def test_eight_digits_prefers_ddmmyyyy_when_valid():
    # 12-01-2025 (DDMMYYYY) wins over 1201-20-25
    assert parse_to_canonical("12012025") == date(2025, 1, 12)


def test_eight_digits_falls_back_to_yyyymmdd():
    # first two digits 20 is a valid day but 25 is not a month
    assert parse_to_canonical("20251231") == date(2025, 12, 31)


def test_date_wrapper_with_offset_suffix():
    assert parse_to_canonical("/Date(1758499200000+0000)/") == date(2025, 9, 22)


@pytest.mark.parametrize(
    "serial, expected",
    [
        (1, date(1900, 1, 1)),
        (59, date(1900, 2, 28)),
        (61, date(1900, 3, 1)),
        (45658, date(2025, 1, 1)),
        (45921, date(2025, 9, 21)),
        (45922, date(2025, 9, 22)),
    ],
)
def test_spreadsheet_serials(serial, expected):
    """Serials follow the spreadsheet calendar (including its 1900 leap day)."""
    assert parse_to_canonical(serial) == expected
    assert parse_to_canonical(str(serial)) == expected


def test_serial_with_time_fraction_uses_day_part():
    assert parse_to_canonical(45922.75) == date(2025, 9, 22)


def test_serial_epoch_is_configurable():
    alt_epoch = date(1899, 12, 30)
    assert SERIAL_EPOCH == date(1899, 12, 31)
    assert parse_to_canonical(45922, epoch=alt_epoch) == date(2025, 9, 21)


def test_datetime_and_date_cells():
    assert parse_to_canonical(datetime(2025, 9, 22, 13, 5)) == date(2025, 9, 22)
    assert parse_to_canonical(date(2025, 9, 22)) == date(2025, 9, 22)
    assert parse_to_canonical(pd.Timestamp("2025-09-22 08:00")) == date(2025, 9, 22)


def test_free_form_text_falls_back_to_generic_parser():
    assert parse_to_canonical("22 Sep 2025") == date(2025, 9, 22)


@pytest.mark.parametrize("raw", ["2025/09/10", "2025-9-10", "2025.09.10"])
def test_free_form_year_first_keeps_month_before_day(raw):
    assert parse_to_canonical(raw) == date(2025, 9, 10)


def test_free_form_day_first_without_padding():
    assert parse_to_canonical("10-9-2025") == date(2025, 9, 10)


@pytest.mark.parametrize("raw", ["12:30", "08:15:00"])
def test_time_only_text_is_not_a_date(raw):
    # 時刻だけでは今日の日付にならない
    assert parse_to_canonical(raw) is None
    assert to_display_date(raw) == INVALID_DATE_MARKER
    assert to_payload_date(raw, today=date(2025, 1, 2)) is None


@pytest.mark.parametrize("raw", [math.inf, -math.inf, float("inf")])
def test_non_finite_numbers_are_invalid(raw):
    assert parse_to_canonical(raw) is None


@pytest.mark.parametrize("raw", [None, "", "   ", math.nan, pd.NaT])
def test_blank_input_is_none(raw):
    assert parse_to_canonical(raw) is None


@pytest.mark.parametrize("raw", ["not a date", "31-02-2025", "2025-13-01", True, -5])
def test_invalid_input_is_none(raw):
    assert parse_to_canonical(raw) is None


def test_render_formats():
    d = date(2025, 9, 2)
    assert render(d, "YYYYMMDD") == "20250902"
    assert render(d, "YYYY-MM-DD") == "2025-09-02"
    assert render(d, "DD-MM-YYYY") == "02-09-2025"


def test_render_unknown_format_raises():
    with pytest.raises(ValueError):
        render(date(2025, 9, 2), "MM/DD/YYYY")


def test_display_date():
    assert to_display_date("2025-09-22") == "22-09-2025"
    assert to_display_date(45922) == "22-09-2025"
    assert to_display_date("garbage") == INVALID_DATE_MARKER
    # 表示側は空でも無効マーカー
    assert to_display_date("") == INVALID_DATE_MARKER
    assert to_display_date(None) == INVALID_DATE_MARKER


def test_payload_date():
    today = date(2025, 1, 2)
    assert to_payload_date("22-09-2025", today=today) == "2025-09-22"
    assert to_payload_date(45922, today=today) == "2025-09-22"
    # empty -> today, invalid -> None
    assert to_payload_date("", today=today) == "2025-01-02"
    assert to_payload_date(None, today=today) == "2025-01-02"
    assert to_payload_date("garbage", today=today) is None


def test_payload_date_defaults_to_current_day():
    assert to_payload_date(None) == date.today().isoformat()

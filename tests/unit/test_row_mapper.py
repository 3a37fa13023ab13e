from __future__ import annotations

import math
from datetime import datetime

from msmt_upload.models.canonical_row import UploadStatus
from msmt_upload.normalize.dates import INVALID_DATE_MARKER
from msmt_upload.services.row_mapper import FIELD_ALIASES, lookup_alias, map_row, map_rows


def test_lookup_alias_first_non_empty_wins():
    row = {"Reading": "", "MeasurementReading": None, "Counter": "15", "Value": "99"}
    assert lookup_alias(row, FIELD_ALIASES["reading"]) == "15"


def test_lookup_alias_earlier_alias_wins_over_later():
    row = {"Measuring Point": "MP-A", "Equipment": "MP-B"}
    assert lookup_alias(row, FIELD_ALIASES["measuring_point"]) == "MP-A"


def test_lookup_alias_is_case_sensitive():
    row = {"measuring point": "MP-A"}
    assert lookup_alias(row, FIELD_ALIASES["measuring_point"]) is None


def test_map_row_reading_mode():
    row = map_row(
        {
            "Measuring Point": "10001",
            "Reading": "1,234.5",
            "Posting Date (DD-MM-YYYY)": "22-09-2025",
            "Text": "Monthly check",
            "Read By": "JSMITH",
        },
        row_number=1,
    )
    assert row.row_number == 1
    assert row.measuring_point == "10001"
    assert row.reading == 1234.5
    assert row.difference is None
    assert row.difference_entered is False
    assert row.posting_date_raw == "22-09-2025"
    assert row.posting_date_display == "22-09-2025"
    assert row.document_text == "Monthly check"
    assert row.read_by == "JSMITH"
    assert row.upload_status is UploadStatus.PENDING


def test_map_row_difference_sets_flag():
    row = map_row({"MeasuringPoint": "10002", "Difference": 12, "Counter": 500}, row_number=2)
    assert row.difference == 12
    assert row.difference_entered is True
    assert row.reading == 500


def test_map_row_numeric_measuring_point_cell():
    # Excel の数値セルは 10001.0 で届く
    row = map_row({"Measuring Point": 10001.0}, row_number=1)
    assert row.measuring_point == "10001"


def test_map_row_date_cell_and_invalid_date():
    ok = map_row({"Date": datetime(2025, 9, 22)}, row_number=1)
    bad = map_row({"Date": "someday"}, row_number=2)
    missing = map_row({}, row_number=3)
    assert ok.posting_date_display == "22-09-2025"
    assert bad.posting_date_display == INVALID_DATE_MARKER
    assert bad.posting_date_raw == "someday"
    assert missing.posting_date_display == INVALID_DATE_MARKER
    assert missing.posting_date_raw is None


def test_map_row_optional_status_and_done_flag():
    row = map_row({"MsmtRdngStatus": "2", "IsDoneAfterTask": "x"}, row_number=1)
    assert row.status_code == "2"
    assert row.done_after_task is True
    plain = map_row({"Measuring Point": "1"}, row_number=2)
    assert plain.status_code is None
    assert plain.done_after_task is False


def test_map_rows_drops_blank_rows_and_keeps_numbers():
    raw_rows = [
        {"Measuring Point": "10001", "Reading": 5},
        {"Measuring Point": None, "Reading": math.nan, "Text": ""},
        {"Measuring Point": "", "Text": "note only"},
        {"Measuring Point": "", "Difference": 4},
    ]
    rows = map_rows(raw_rows)
    # row 4 has only a difference: measuring point, reading and text are all absent
    assert [r.row_number for r in rows] == [1, 3]
    assert rows[1].document_text == "note only"


def test_map_rows_empty_input():
    assert map_rows([]) == []


def test_map_rows_keeps_row_with_only_measuring_point():
    rows = map_rows([{"Measuring Point": "MP1"}])
    assert len(rows) == 1
    assert rows[0].measuring_point == "MP1"
    assert rows[0].reading is None


def test_map_rows_survives_non_finite_date_cell():
    rows = map_rows([{"Measuring Point": "MP1", "Posting Date": math.inf}, {"Measuring Point": "MP2"}])
    assert [r.measuring_point for r in rows] == ["MP1", "MP2"]
    assert rows[0].posting_date_display == INVALID_DATE_MARKER

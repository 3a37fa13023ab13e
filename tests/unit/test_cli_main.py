from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from msmt_upload.cli.__main__ import SelectionError, main as cli_main, parse_selection, select_rows
from msmt_upload.client.api import CreationResponse
from msmt_upload.client.errors import SubmissionError
from msmt_upload.models.canonical_row import CanonicalRow
from msmt_upload.models.lookup_result import LookupResult

UPLOAD_ROWS = [
    {"Measuring Point": "10001", "Reading": 1500, "Posting Date (DD-MM-YYYY)": "22-09-2025", "Text": "A"},
    {"Measuring Point": "10002", "Reading": 20, "Posting Date (DD-MM-YYYY)": "22-09-2025", "Text": "B"},
    {"Measuring Point": "10003", "Difference": 5, "Posting Date (DD-MM-YYYY)": "22-09-2025", "Text": "C"},
]


@pytest.fixture()
def mock_client():
    with patch("msmt_upload.cli.__main__.MeasurementDocumentClient") as cls:
        client = cls.return_value
        client.__enter__.return_value = client
        client.lookup_measuring_point.return_value = LookupResult(True, "Pump hours", "0010", "H")
        client.create_document.return_value = CreationResponse(201, "4711")
        yield client


class TestParseSelection:
    def test_ranges_and_singles(self):
        assert parse_selection("1,3-5") == [1, 3, 4, 5]

    def test_duplicates_and_spaces(self):
        assert parse_selection(" 2 , 2,1-2 ") == [1, 2]

    @pytest.mark.parametrize("expr", ["", ",", "a", "0", "5-3", "1-x", "-2"])
    def test_invalid(self, expr):
        with pytest.raises(SelectionError):
            parse_selection(expr)


def test_select_rows_keeps_selection_order():
    rows = [CanonicalRow(row_number=n) for n in (1, 2, 4)]
    assert [r.row_number for r in select_rows(rows, [2, 4])] == [2, 4]
    assert select_rows(rows, None) == rows
    with pytest.raises(SelectionError):
        select_rows(rows, [3])


def test_template_command_needs_no_config(temp_workdir: Path, capsys):
    code = cli_main(["template", "out/Template.xlsx"])
    assert code == 0
    assert (temp_workdir / "out" / "Template.xlsx").exists()
    assert "INFO Template written:" in capsys.readouterr().out


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    code = cli_main(["review", "data/upload.xlsx"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_missing_upload_file_is_fatal(write_config: Path, mock_client, capsys):
    code = cli_main(["submit", "data/nope.xlsx"])
    assert code == 1
    assert "ERROR file:" in capsys.readouterr().out
    mock_client.create_document.assert_not_called()


def test_review_prints_enriched_rows(write_config: Path, make_upload_xlsx, mock_client, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS)
    code = cli_main(["review", str(path)])
    out = capsys.readouterr().out
    assert code == 0
    assert "Pump hours" in out
    assert "10003" in out
    assert mock_client.lookup_measuring_point.call_count == 3
    # 列設定は保存される
    assert Path("prefs/preferences.json").exists()


def test_review_no_lookup_and_hide(write_config: Path, make_upload_xlsx, mock_client, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS)
    code = cli_main(["review", str(path), "--no-lookup", "--hide", "colDescription"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Description" not in out
    mock_client.lookup_measuring_point.assert_not_called()


def test_submit_partial_failure(write_config: Path, make_upload_xlsx, mock_client, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS)
    mock_client.create_document.side_effect = [
        CreationResponse(201, "4711"),
        SubmissionError("HTTP 400 - Reading is lower than previous reading", status_code=400),
        CreationResponse(201, "4712"),
    ]
    code = cli_main(["submit", str(path)])
    out = capsys.readouterr().out
    lines = out.strip().splitlines()

    assert code == 2
    assert mock_client.create_document.call_count == 3
    log_lines = [line for line in lines if line.startswith(("FAILED", "SUCCESS", "SKIPPED"))]
    assert log_lines[0].startswith("FAILED")
    assert "Reading is lower than previous reading" in log_lines[0]
    assert lines[-1].startswith("SUMMARY rows=3/3 success=2 failed=1 skipped=0 elapsed_sec=")


def test_submit_selected_rows_all_success(write_config: Path, make_upload_xlsx, mock_client, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS)
    code = cli_main(["submit", str(path), "--rows", "1,3", "--sort", "desc"])
    out = capsys.readouterr().out
    assert code == 0
    sent = [c.args[0] for c in mock_client.create_document.call_args_list]
    assert [p.MeasuringPoint for p in sent] == ["10001", "10003"]
    assert sent[1].MsmtCounterReadingDifference == 5
    assert sent[0].MsmtRdngDate == "2025-09-22"
    assert "SUMMARY rows=2/2 success=2 failed=0 skipped=0" in out


def test_submit_bad_selection(write_config: Path, make_upload_xlsx, mock_client, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS)
    assert cli_main(["submit", str(path), "--rows", "x"]) == 1
    assert cli_main(["submit", str(path), "--rows", "7"]) == 1
    assert "ERROR rows:" in capsys.readouterr().out
    mock_client.create_document.assert_not_called()


def test_submit_export_log(write_config: Path, make_upload_xlsx, mock_client, temp_workdir: Path, capsys):
    path = make_upload_xlsx(UPLOAD_ROWS[:1])
    code = cli_main(["submit", str(path), "--export-log", "--no-lookup"])
    assert code == 0
    files = list((temp_workdir / "logs").glob("uploads-*.log"))
    assert len(files) == 1
    record = json.loads(files[0].read_text(encoding="utf-8").strip())
    assert record["equipment"] == "10001"
    assert record["state"] == "SUCCESS"
    assert record["error_text"] == "SUCCESS - Doc: 4711"


def test_latest_command(write_config: Path, mock_client, capsys):
    mock_client.latest_reading.return_value = 1520.5
    assert cli_main(["latest", "10001"]) == 0
    assert "10001\t1520.5" in capsys.readouterr().out

    mock_client.latest_reading.return_value = None
    assert cli_main(["latest", "10009"]) == 2


def test_columns_width_persisted(write_config: Path, capsys):
    assert cli_main(["columns", "--width", "colText=44"]) == 0
    stored = json.loads(Path("prefs/preferences.json").read_text(encoding="utf-8"))
    columns = json.loads(stored["MP_COL_SETTINGS"])
    assert next(c for c in columns if c["id"] == "colText")["width"] == "44"

    assert cli_main(["columns", "--width", "colNope=1"]) == 1
    assert cli_main(["columns", "--reset"]) == 0
    columns = json.loads(json.loads(Path("prefs/preferences.json").read_text(encoding="utf-8"))["MP_COL_SETTINGS"])
    assert next(c for c in columns if c["id"] == "colText")["width"] == "30"


def test_debug_flag(write_config: Path, capsys):
    assert cli_main(["--debug", "columns"]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out


def test_bearer_token_from_dotenv(write_config: Path, temp_workdir: Path, monkeypatch, capsys):
    # monkeypatch で元の環境に戻す
    monkeypatch.setenv("MSMT_BEARER_TOKEN", "placeholder")
    (temp_workdir / ".env").write_text("MSMT_BEARER_TOKEN=from-dotenv\n", encoding="utf-8")
    with patch("msmt_upload.cli.__main__.MeasurementDocumentClient") as cls:
        client = MagicMock()
        cls.return_value = client
        client.__enter__.return_value = client
        client.latest_reading.return_value = 1.0
        cli_main(["latest", "10001"])
    assert cls.call_args.kwargs["bearer_token"] == "from-dotenv"

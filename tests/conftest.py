# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from msmt_upload.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _fresh_logging():
    # setup_logging() は sys.stdout を掴むため capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("MSMT_BASE_URL", raising=False)
    monkeypatch.delenv("MSMT_BEARER_TOKEN", raising=False)


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """service:
  base_url: https://s4.example.test
  timeout_seconds: 5
  verify_tls: false
upload:
  delay_seconds: 0
  serial_epoch: 1899-12-31
  default_uom: H
preferences:
  path: ./prefs/preferences.json
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "upload.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_upload_xlsx(temp_workdir: Path) -> Callable[..., Path]:
    """Write an upload workbook (header row + data rows) with pandas/openpyxl."""

    def _make(rows: list[dict[str, Any]], name: str = "upload.xlsx", columns: list[str] | None = None) -> Path:
        path = temp_workdir / "data" / name
        df = pd.DataFrame(rows, columns=columns)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="Sheet1", index=False)
        return path

    return _make

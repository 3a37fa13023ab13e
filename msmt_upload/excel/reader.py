from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

logger = logging.getLogger(__name__)

"""Upload workbook reader / template writer.

- 先頭シートのみ読み込む (1行目 = ヘッダ, 2行目以降 = データ行)
- 値は変換せずそのまま返す (日付セルは datetime, 数値セルは float/int)
- 全セル空の行はスキップ
"""

__all__ = [
    "UploadFileError",
    "TEMPLATE_COLUMNS",
    "TEMPLATE_SHEET_NAME",
    "read_upload_file",
    "write_template",
]

TEMPLATE_SHEET_NAME = "Sheet1"
# (header, column width)
TEMPLATE_COLUMNS: tuple[tuple[str, int], ...] = (
    ("Measuring Point", 15),
    ("Reading", 10),
    ("Difference", 10),
    ("Posting Date (DD-MM-YYYY)", 30),
    ("Text", 40),
    ("Read By", 10),
)


class UploadFileError(Exception):
    """Raised when the upload workbook cannot be read."""


def _clean_value(val: Any) -> Any:
    if val is None:
        return None
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        # list などスカラーでない値
        return val
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    return val


def read_upload_file(path: Path) -> list[dict[str, Any]]:
    """Read the first sheet of an upload workbook into raw row dicts.

    Header names are stripped; columns without a header (``Unnamed: n``)
    are dropped.
    """
    if not path.exists():
        raise UploadFileError(f"file not found: {path}")
    try:
        df = pd.read_excel(path, sheet_name=0, header=0, dtype=object)
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as e:
        raise UploadFileError(f"cannot read workbook {path.name}: {e}") from e

    columns = [str(c).strip() for c in df.columns]
    keep = [i for i, c in enumerate(columns) if c and not c.startswith("Unnamed:")]
    if not keep:
        raise UploadFileError(f"workbook {path.name} has no header row")

    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        row = {columns[i]: _clean_value(raw[i]) for i in keep}
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in row.values()):
            continue
        rows.append(row)
    logger.debug("read %d data rows from %s", len(rows), path)
    return rows


def write_template(path: Path) -> Path:
    """Write the empty upload template (header row only)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(columns=[name for name, _ in TEMPLATE_COLUMNS])
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=TEMPLATE_SHEET_NAME, index=False)
        ws = writer.sheets[TEMPLATE_SHEET_NAME]
        for idx, (_, width) in enumerate(TEMPLATE_COLUMNS, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = width
    return path

#!/usr/bin/env python3
"""Sample upload workbook generator for manual trials.

Generates a synthetic upload file in the format read by ``msmt-upload``:
- Row 1: Header row (one of several alias sets)
- Row 2+: Data rows with a mix of reading / difference rows and posting
  dates in every accepted shape (DD-MM-YYYY, YYYY-MM-DD, dotted, 8 digits,
  spreadsheet serials, real date cells, blanks)
"""
from __future__ import annotations

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

# field -> header, one tuple per alias set
HEADER_SETS: dict[str, tuple[str, str, str, str, str, str]] = {
    "template": ("Measuring Point", "Reading", "Difference", "Posting Date (DD-MM-YYYY)", "Text", "Read By"),
    "technical": (
        "MeasuringPoint",
        "MeasurementCounterReading",
        "MsmtCounterReadingDifference",
        "MsmtRdngDate",
        "MeasurementDocumentText",
        "MsmtRdngByUser",
    ),
    "short": ("Equipment", "Counter", "CounterDifference", "Date", "note", "User"),
}

DATE_SHAPES = ("dmy", "iso", "dotted", "digits", "serial", "cell", "blank")
_SERIAL_BASE = date(1899, 12, 31)


def _render_date(d: date, shape: str) -> Any:
    if shape == "dmy":
        return d.strftime("%d-%m-%Y")
    if shape == "iso":
        return d.isoformat()
    if shape == "dotted":
        return d.strftime("%d.%m.%Y")
    if shape == "digits":
        return d.strftime("%d%m%Y")
    if shape == "serial":
        # 1900 閏年バグ分 +1
        return (d - _SERIAL_BASE).days + 1
    if shape == "cell":
        return pd.Timestamp(d)
    return None


def generate_rows(rows: int, header_set: str = "template", seed: int = 42) -> pd.DataFrame:
    """Generate synthetic upload rows.

    Roughly 30% of the rows use the difference column, the rest a reading.
    """
    np.random.seed(seed)
    mp_col, reading_col, diff_col, date_col, text_col, user_col = HEADER_SETS[header_set]

    start = date(2025, 1, 1)
    offsets = np.random.randint(0, 270, rows)
    shapes = np.random.choice(DATE_SHAPES, rows)
    use_difference = np.random.random(rows) < 0.3
    readings = np.round(np.random.uniform(10, 50_000, rows), 1)
    differences = np.round(np.random.uniform(1, 500, rows), 1)
    readers = np.random.choice(["JSMITH", "AKUMAR", "MTANAKA", ""], rows)

    data: dict[str, list[Any]] = {c: [] for c in HEADER_SETS[header_set]}
    for i in range(rows):
        d = start + timedelta(days=int(offsets[i]))
        data[mp_col].append(str(10_000 + i))
        if use_difference[i]:
            data[reading_col].append(None)
            data[diff_col].append(float(differences[i]))
        else:
            data[reading_col].append(float(readings[i]))
            data[diff_col].append(None)
        data[date_col].append(_render_date(d, str(shapes[i])))
        data[text_col].append(f"Sample reading {i + 1}" if i % 4 else "")
        data[user_col].append(str(readers[i]))
    return pd.DataFrame(data)


def create_upload_file(output_path: Path, rows: int, header_set: str = "template", seed: int = 42) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = generate_rows(rows, header_set, seed)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name="Sheet1", index=False)

    print(f"Created upload file: {output_path}")
    print(f"  Header set: {header_set} ({', '.join(df.columns)})")
    print(f"  Data rows: {rows}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic measurement reading upload workbook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sample.xlsx
  %(prog)s sample.xlsx --rows 200 --headers technical --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output Excel file path")
    parser.add_argument("--rows", type=int, default=25, help="Number of data rows (default: 25)")
    parser.add_argument(
        "--headers",
        choices=sorted(HEADER_SETS),
        default="template",
        help="Header alias set (default: template)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    try:
        create_upload_file(args.output, args.rows, args.headers, args.seed)
    except OSError as e:
        print(f"Error writing upload file: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

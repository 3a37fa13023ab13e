from __future__ import annotations

import argparse
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Any

import pandas as pd
from dotenv import load_dotenv

from msmt_upload.client.api import MeasurementDocumentClient
from msmt_upload.config.loader import DEFAULT_CONFIG_PATH, ConfigError, UploadConfig, load_config
from msmt_upload.excel.reader import UploadFileError, read_upload_file, write_template
from msmt_upload.logging.init import log_summary, set_debug, setup_logging
from msmt_upload.logging.outcome_log import OutcomeLog
from msmt_upload.models.canonical_row import CanonicalRow
from msmt_upload.models.log_entry import LogEntry
from msmt_upload.preferences.columns import (
    DEFAULT_COLUMNS,
    ColumnSetting,
    apply_column_settings,
    load_column_settings,
    save_column_settings,
)
from msmt_upload.preferences.store import JsonFilePreferenceStore
from msmt_upload.services.enrichment import enrich_rows
from msmt_upload.services.payload_builder import build_payload
from msmt_upload.services.review import ReviewTable
from msmt_upload.services.row_mapper import map_rows
from msmt_upload.services.submission import CancelToken, submit_all
from msmt_upload.services.summary import render_summary_line

"""CLI entrypoint.

Subcommands:
- template OUT.xlsx            空のアップロード用テンプレートを出力
- review FILE.xlsx             取込 -> 正規化 -> 照会 -> 一覧表示
- submit FILE.xlsx             取込 -> 正規化 -> 照会 -> 1行ずつ登録 -> ログ + SUMMARY
- latest MEASURING_POINT       最新の測定値を表示
- columns                      一覧表示の列設定 (幅) の表示/変更

Exit codes: 0 = all rows succeeded (or nothing to do), 2 = some rows failed or
were skipped, 1 = fatal (config, workbook, bad arguments).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


class SelectionError(ValueError):
    """Raised for a malformed --rows expression."""


def parse_selection(expr: str) -> list[int]:
    """Parse a row selection like ``"1,3-5"`` into sorted unique row numbers.

    >>> parse_selection("1,3-5")
    [1, 3, 4, 5]
    >>> parse_selection(" 2 , 2 ")
    [2]
    """
    numbers: set[int] = set()
    for part in expr.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                lo_s, hi_s = part.split("-", 1)
                lo, hi = int(lo_s), int(hi_s)
                if lo < 1 or hi < lo:
                    raise SelectionError(f"invalid row range: {part}")
                numbers.update(range(lo, hi + 1))
            else:
                n = int(part)
                if n < 1:
                    raise SelectionError(f"invalid row number: {part}")
                numbers.add(n)
        except ValueError as e:
            if isinstance(e, SelectionError):
                raise
            raise SelectionError(f"invalid row selection: {part}") from e
    if not numbers:
        raise SelectionError(f"empty row selection: {expr!r}")
    return sorted(numbers)


def select_rows(rows: list[CanonicalRow], selection: list[int] | None) -> list[CanonicalRow]:
    if selection is None:
        return list(rows)
    by_number = {r.row_number: r for r in rows}
    missing = [n for n in selection if n not in by_number]
    if missing:
        raise SelectionError(f"row(s) not in upload: {', '.join(map(str, missing))}")
    return [by_number[n] for n in selection]


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (.env の値を優先)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_width_arg(value: str) -> tuple[str, str]:
    col_id, sep, width = value.partition("=")
    if not sep or not col_id.strip() or not width.strip():
        raise argparse.ArgumentTypeError(f"expected ID=WIDTH, got {value!r}")
    return col_id.strip(), width.strip()


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="msmt-upload", description="Measurement reading mass upload")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write the upload template workbook")
    t.add_argument("output", type=Path)

    r = sub.add_parser("review", help="Import a workbook and print the row table")
    r.add_argument("file", type=Path)
    r.add_argument("--no-lookup", action="store_true", help="Skip measuring point lookup")
    r.add_argument("--hide", nargs="+", default=[], metavar="ID", help="Hide columns for this run")

    s = sub.add_parser("submit", help="Import a workbook and submit the selected rows")
    s.add_argument("file", type=Path)
    s.add_argument("--rows", help="Row selection, e.g. 1,3-5 (default: all rows)")
    s.add_argument("--no-lookup", action="store_true", help="Skip measuring point lookup")
    s.add_argument("--sort", choices=["asc", "desc"], default="asc", help="Log order by state")
    s.add_argument("--export-log", action="store_true", help="Write the outcome log as JSON lines")

    latest = sub.add_parser("latest", help="Print the newest reading of a measuring point")
    latest.add_argument("measuring_point")

    c = sub.add_parser("columns", help="Show or edit column preferences")
    c.add_argument("--width", nargs="+", type=_parse_width_arg, default=[], metavar="ID=W")
    c.add_argument("--reset", action="store_true", help="Restore default columns")
    return p


def _make_client(cfg: UploadConfig) -> MeasurementDocumentClient:
    svc = cfg.service
    return MeasurementDocumentClient(
        svc.base_url,
        bearer_token=svc.bearer_token,
        document_path=svc.document_path,
        lookup_path=svc.lookup_path,
        timeout=svc.timeout_seconds,
        verify=svc.verify_tls,
    )


def _load_rows(
    cfg: UploadConfig, path: Path, client: MeasurementDocumentClient | None, logger: Any
) -> list[CanonicalRow]:
    raw_rows = read_upload_file(path)
    rows = map_rows(raw_rows, epoch=cfg.upload.serial_epoch)
    logger.info(f"Imported {len(rows)} row(s) from {path.name}")
    if client is not None:
        enrich_rows(rows, client.lookup_measuring_point, default_uom=cfg.upload.default_uom)
    return rows


def _format_entry(entry: LogEntry) -> str:
    return f"{entry.state:<8} {entry.equipment:<20} {entry.value!s:<12} {entry.timestamp}  {entry.error_text}"


@contextmanager
def _cancel_on_sigint(cancel: CancelToken, logger: Any) -> Iterator[None]:
    """Turn Ctrl+C into a cancel request (the row in flight still completes)."""

    def _handler(signum: int, frame: Any) -> None:
        if not cancel.cancelled:
            logger.warning("cancel requested, stopping after the current row")
        cancel.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _cmd_template(args: argparse.Namespace, logger: Any) -> int:
    path = write_template(args.output)
    logger.info(f"Template written: {path}")
    return EXIT_SUCCESS_ALL


def _cmd_review(args: argparse.Namespace, cfg: UploadConfig, logger: Any) -> int:
    if args.no_lookup:
        rows = _load_rows(cfg, args.file, None, logger)
    else:
        with _make_client(cfg) as client:
            rows = _load_rows(cfg, args.file, client, logger)

    store = JsonFilePreferenceStore(cfg.preferences_path)
    settings = load_column_settings(store)
    table = ReviewTable(rows)
    if not apply_column_settings(table.apply_settings, settings):
        # 保存設定が使えない場合は既定列で表示
        table.apply_settings(DEFAULT_COLUMNS)
    if args.hide:
        table.hide(args.hide)
    print(table.render())
    return EXIT_SUCCESS_ALL


def _cmd_submit(args: argparse.Namespace, cfg: UploadConfig, logger: Any) -> int:
    try:
        selection = parse_selection(args.rows) if args.rows else None
    except SelectionError as e:
        logger.error(f"rows: {e}")
        return EXIT_FATAL

    outcome_log = OutcomeLog(cfg.logs_directory)
    cancel = CancelToken()
    with _make_client(cfg) as client:
        rows = _load_rows(cfg, args.file, None if args.no_lookup else client, logger)
        try:
            selected = select_rows(rows, selection)
        except SelectionError as e:
            logger.error(f"rows: {e}")
            return EXIT_FATAL
        if selected:
            logger.info(f"Submitting {len(selected)} row(s)")
        else:
            logger.info("No rows to submit")
        with _cancel_on_sigint(cancel, logger):
            result = submit_all(
                selected,
                client.create_document,
                outcome_log,
                build=partial(build_payload, epoch=cfg.upload.serial_epoch),
                delay=cfg.upload.delay_seconds,
                cancel=cancel,
            )

    for entry in outcome_log.sorted_by_state(descending=args.sort == "desc"):
        print(_format_entry(entry))

    if args.export_log:
        path = outcome_log.flush()
        logger.info(f"Outcome log written: {path}")

    # log_summary が "SUMMARY " を付与する
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.all_succeeded:
        return EXIT_SUCCESS_ALL
    return EXIT_PARTIAL_FAILURE


def _cmd_latest(args: argparse.Namespace, cfg: UploadConfig, logger: Any) -> int:
    with _make_client(cfg) as client:
        value = client.latest_reading(args.measuring_point)
    if value is None:
        logger.warning(f"No reading found for {args.measuring_point}")
        return EXIT_PARTIAL_FAILURE
    print(f"{args.measuring_point}\t{value}")
    return EXIT_SUCCESS_ALL


def _cmd_columns(args: argparse.Namespace, cfg: UploadConfig, logger: Any) -> int:
    store = JsonFilePreferenceStore(cfg.preferences_path)
    if args.reset:
        save_column_settings(store, list(DEFAULT_COLUMNS))
        logger.info("Column settings reset")
    settings: list[ColumnSetting] = load_column_settings(store)

    if args.width:
        by_id = {c.id: i for i, c in enumerate(settings)}
        unknown = [col_id for col_id, _ in args.width if col_id not in by_id]
        if unknown:
            logger.error(f"unknown column id(s): {', '.join(unknown)}")
            return EXIT_FATAL
        for col_id, width in args.width:
            i = by_id[col_id]
            settings[i] = replace(settings[i], width=width)
        save_column_settings(store, settings)
        logger.info("Column settings saved")

    df = pd.DataFrame([c.to_dict() for c in settings], columns=["id", "key", "label", "visible", "width"])
    print(df.to_string(index=False))
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # NOTE: [] が渡された場合に sys.argv が混入しないよう None のみ判定
    if argv is None:
        argv = sys.argv[1:]
    args = _build_parser().parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if args.command == "template":
        return _cmd_template(args, logger)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    if cfg.service.bearer_token is None:
        logger.debug("MSMT_BEARER_TOKEN not set, sending requests without Authorization")

    handlers = {
        "review": _cmd_review,
        "submit": _cmd_submit,
        "latest": _cmd_latest,
        "columns": _cmd_columns,
    }
    try:
        return handlers[args.command](args, cfg, logger)
    except UploadFileError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from stock_import.client.state import StreamFatalError
from stock_import.client.submit import submit_file_with_progress
from stock_import.config.loader import ConfigError, ImportConfig, load_config
from stock_import.excel.reader import SpreadsheetReadError, UnsupportedSourceError, read_source_text
from stock_import.logging.init import log_summary, set_debug, setup_logging
from stock_import.services.orchestrator import prepare_batch, run_import
from stock_import.services.progress import ProgressTracker
from stock_import.services.summary import render_summary_line
from stock_import.tabular.template import csv_template
from stock_import.tabular.validator import NoValidRowsError

"""CLI entrypoint.

Flow:
- Load .env, then config (default config/import.yml)
- Read the source file (CSV directly, spreadsheets through the pandas adapter)
- Run the pipeline with a tqdm progress bar and print the SUMMARY line

Exit codes: 0 everything imported, 2 some rows invalid or failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = Path("config/import.yml")
INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; .env values win over the process env."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _apply_env_overrides(cfg: ImportConfig) -> ImportConfig:
    base_url = os.getenv("STOCK_IMPORT_BASE_URL")
    if base_url:
        cfg = dataclasses.replace(cfg, endpoint=dataclasses.replace(cfg.endpoint, base_url=base_url))
    warehouse = os.getenv("STOCK_IMPORT_WAREHOUSE")
    if warehouse:
        cfg = dataclasses.replace(cfg, warehouse=warehouse)
    return cfg


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bulk stock/catalog importer")
    p.add_argument("file", nargs="?", type=Path, help="CSV or spreadsheet to import")
    p.add_argument("--warehouse", help="Warehouse code applied to every row")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to import.yml")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print parsed sample rows then exit")
    p.add_argument("--template", action="store_true", help="Print the CSV template then exit")
    p.add_argument(
        "--multipart",
        action="store_true",
        help="Upload the raw file and let the service parse it",
    )
    return p.parse_args(argv)


def _inspect_data(text: str, warehouse: str, cfg: ImportConfig) -> int:
    try:
        batch = prepare_batch(text, warehouse, cfg)
    except NoValidRowsError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(
        f"rows={batch.total_rows} valid={batch.valid_rows} invalid={len(batch.invalid_rows)} "
        f"corrections={batch.corrections.total}"
    )
    for record in batch.records[:INSPECT_SAMPLE_ROWS]:
        print("  sample_row=", record.to_payload())
    for invalid in batch.invalid_rows[:INSPECT_SAMPLE_ROWS]:
        print("  invalid:", invalid.describe())
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when no argv was given ([] means "no arguments")
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.template:
        print(csv_template())
        return EXIT_SUCCESS_ALL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.file is None:
        logger.error("no input file given")
        return EXIT_FATAL

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = _apply_env_overrides(load_config(args.config))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    warehouse = args.warehouse or cfg.warehouse
    if not warehouse:
        logger.error("warehouse not set (use --warehouse or the config 'warehouse' key)")
        return EXIT_FATAL

    if not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL

    if args.multipart:
        return _run_multipart(args.file, warehouse, cfg)

    try:
        text = read_source_text(args.file)
    except (UnsupportedSourceError, SpreadsheetReadError, OSError, ValueError) as e:
        logger.error(f"read: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(text, warehouse, cfg)

    logger.info(f"Importing {args.file.name} into warehouse {warehouse}")
    try:
        with ProgressTracker() as progress:
            result = run_import(text, warehouse, config=cfg, on_progress=progress, source=args.file.name)
    except (NoValidRowsError, StreamFatalError):
        # already logged by the orchestrator
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"error log: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result.batch, result.summary, result.elapsed_seconds)
    # log_summary adds the "SUMMARY " prefix
    log_summary(summary_line[len("SUMMARY "):])

    if result.batch.invalid_rows or result.summary.hard_failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _run_multipart(path: Path, warehouse: str, cfg: ImportConfig) -> int:
    logger = setup_logging()
    logger.info(f"Uploading {path.name} into warehouse {warehouse}")
    try:
        with ProgressTracker() as progress:
            summary = submit_file_with_progress(path, warehouse, progress, endpoint=cfg.endpoint)
    except StreamFatalError as e:
        logger.error(f"import failed: {e}")
        return EXIT_FATAL
    for line in summary.preview(cfg.preview_limit):
        logger.warning(line)
    log_summary(f"inserted={summary.inserted} failed={summary.hard_failed} updated={summary.updated}")
    return EXIT_PARTIAL_FAILURE if summary.hard_failed > 0 else EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import requests

from ..client.state import StreamFatalError
from ..client.submit import NetworkError, submit_with_progress
from ..config.loader import ImportConfig
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.events import ProgressEvent, RowErrorEvent
from ..models.records import ImportBatch, InvalidRow
from ..models.summary import DUPLICATE_MARKER, ImportSummary
from ..tabular.field_map import DEFAULT_SYNONYMS
from ..tabular.parser import parse
from ..tabular.validator import NoValidRowsError, build_batch

"""Service orchestration for one import run.

parse -> build batch (normalize + validate) -> submit with progress -> summary

Invalid rows, per-row submission errors and fatal failures are written to the
JSON Lines error log, which is flushed once per run. Fatal errors
(NoValidRowsError, StreamFatalError, NetworkError) are re-raised after
logging.
"""

__all__ = [
    "ImportResult",
    "run_import",
    "prepare_batch",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    batch: ImportBatch
    summary: ImportSummary
    elapsed_seconds: float


def prepare_batch(text: str, warehouse: str, config: ImportConfig) -> ImportBatch:
    """Parse and validate without touching the network."""
    synonyms = DEFAULT_SYNONYMS.with_extra(config.parser.header_synonyms)
    raw_records = parse(text, warehouse, min_columns=config.parser.min_columns)
    return build_batch(raw_records, synonyms)


def run_import(
    text: str,
    warehouse: str,
    *,
    config: ImportConfig,
    session: requests.Session | None = None,
    on_progress: Callable[[ProgressEvent], None] | None = None,
    source: str = "<input>",
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Run the whole pipeline for one file's text.

    Raises:
        NoValidRowsError: Nothing to submit (no request is made)
        StreamFatalError: The ingestion service failed the batch
        NetworkError: Transport failure (subclass of StreamFatalError)
    """
    start = time.monotonic()
    if error_log is None:
        error_log = ErrorLogBuffer(config.error_log_dir)

    try:
        batch = _prepare_and_log(text, warehouse, config, source, error_log)

        def handle_event(event: ProgressEvent) -> None:
            if isinstance(event, RowErrorEvent) and not event.is_fatal:
                _log_row_error(event, batch, source, error_log)
            if on_progress is not None:
                on_progress(event)

        try:
            summary = submit_with_progress(
                batch.records,
                handle_event,
                endpoint=config.endpoint,
                session=session,
            )
        except NetworkError as e:
            error_log.append(ErrorRecord.for_batch(source, "NETWORK_ERROR", str(e)))
            logger.error("network: %s", e)
            raise
        except StreamFatalError as e:
            error_log.append(ErrorRecord.for_batch(source, "STREAM_FATAL", str(e)))
            logger.error("import failed: %s", e)
            raise
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info("error log written: %s", path)

    elapsed = time.monotonic() - start
    logger.info(
        "import complete: inserted=%d failed=%d updated=%d",
        summary.inserted,
        summary.hard_failed,
        summary.updated,
    )
    for line in summary.preview(config.preview_limit):
        logger.warning(line)
    return ImportResult(batch=batch, summary=summary, elapsed_seconds=elapsed)


def _prepare_and_log(
    text: str, warehouse: str, config: ImportConfig, source: str, error_log: ErrorLogBuffer
) -> ImportBatch:
    try:
        batch = prepare_batch(text, warehouse, config)
    except NoValidRowsError as e:
        _log_invalid_rows(e.invalid_rows, source, error_log)
        logger.error("validation: %s", e)
        raise

    _log_invalid_rows(batch.invalid_rows, source, error_log)
    if batch.invalid_rows:
        logger.warning("%d of %d rows skipped as invalid", len(batch.invalid_rows), batch.total_rows)

    c = batch.corrections
    if c.total:
        logger.info(
            "auto-corrected: names generated=%d quantities defaulted=%d costs defaulted=%d",
            c.product_name_generated,
            c.quantity_defaulted,
            c.cost_defaulted,
        )
    logger.info("submitting %d valid rows from %s", batch.valid_rows, source)
    return batch


def _log_row_error(event: RowErrorEvent, batch: ImportBatch, source: str, error_log: ErrorLogBuffer) -> None:
    row = event.row or 0
    source_row = batch.records[row - 1].row_index if 1 <= row <= len(batch.records) else row
    error_type = "DUPLICATE_ENTRY" if DUPLICATE_MARKER in event.message else "ROW_SUBMISSION_ERROR"
    error_log.append(ErrorRecord.create(source, source_row, error_type, event.message))


def _log_invalid_rows(invalid_rows: list[InvalidRow], source: str, error_log: ErrorLogBuffer) -> None:
    for invalid in invalid_rows:
        error_log.append(ErrorRecord.create(source, invalid.row_index, "VALIDATION_ERROR", "; ".join(invalid.reasons)))

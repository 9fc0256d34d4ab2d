from __future__ import annotations

import json
from pathlib import Path

import pytest

from stock_import.client.state import StreamFatalError
from stock_import.config.loader import config_from_dict
from stock_import.logging.error_log import ERROR_TYPES, ErrorLogBuffer
from stock_import.services.orchestrator import run_import
from stock_import.tabular.validator import NoValidRowsError

"""Error log contract: JSON Lines, fixed key set, row=-1 for batch-level errors."""

REQUIRED_KEYS = {"timestamp", "source", "row", "error_type", "message"}


def _cfg():
    return config_from_dict({"endpoint": {"base_url": "http://ingest.test/api"}, "error_log_dir": "./logs"})


def _lines(path: Path) -> list[dict]:
    return [json.loads(raw) for raw in path.read_text(encoding="utf-8").splitlines()]


def test_row_level_records(temp_workdir: Path, sample_csv: str, make_session, happy_stream):
    buf = ErrorLogBuffer()
    run_import(sample_csv, "WH1", config=_cfg(), session=make_session(happy_stream), source="stock.csv", error_log=buf)
    records = _lines(buf.file_path)
    assert all(set(r.keys()) == REQUIRED_KEYS for r in records)
    assert all(r["error_type"] in ERROR_TYPES for r in records)
    assert all(r["source"] == "stock.csv" for r in records)
    by_type = {r["error_type"]: r for r in records}
    assert by_type["VALIDATION_ERROR"]["row"] == 3
    # batch row 2 is the second valid record, source row 2
    assert by_type["DUPLICATE_ENTRY"]["row"] == 2


def test_batch_level_record_uses_minus_one(temp_workdir: Path, sample_csv: str, make_session):
    buf = ErrorLogBuffer()
    session = make_session([{"type": "start", "total": 3}, {"type": "error", "message": "Warehouse not found"}])
    with pytest.raises(StreamFatalError):
        run_import(sample_csv, "WH1", config=_cfg(), session=session, error_log=buf)
    fatal = [r for r in _lines(buf.file_path) if r["error_type"] == "STREAM_FATAL"]
    assert len(fatal) == 1
    assert fatal[0]["row"] == -1
    assert fatal[0]["message"] == "Warehouse not found"


def test_validation_only_failure_is_logged(temp_workdir: Path):
    buf = ErrorLogBuffer()
    with pytest.raises(NoValidRowsError):
        run_import("barcode,qty\n,1\n", "WH1", config=_cfg(), error_log=buf)
    records = _lines(buf.file_path)
    assert [(r["row"], r["error_type"], r["message"]) for r in records] == [
        (1, "VALIDATION_ERROR", "Barcode is required")
    ]

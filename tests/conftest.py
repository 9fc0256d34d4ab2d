# Shared pytest fixtures
from __future__ import annotations

import json
import logging
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest

from stock_import.config.loader import EndpointConfig
from stock_import.logging.init import LOGGER_NAME, reset_logging


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Undo setup_logging() between tests so caplog keeps seeing records."""
    def _reset() -> None:
        reset_logging()
        pkg_logger = logging.getLogger(LOGGER_NAME)
        for handler in pkg_logger.handlers[:]:
            pkg_logger.removeHandler(handler)
        pkg_logger.propagate = True
        pkg_logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """endpoint:
  base_url: http://ingest.test/api
  progress_path: /bulk-upload/progress
  upload_path: /bulk-upload
  connect_timeout: 5
  idle_timeout: 60
warehouse: WH-MAIN
parser:
  min_columns: 4
  header_synonyms:
    qty: [on hand]
preview_limit: 5
error_log_dir: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def endpoint() -> EndpointConfig:
    return EndpointConfig(base_url="http://ingest.test/api", connect_timeout=5, idle_timeout=60)


@pytest.fixture()
def sample_csv() -> str:
    return (
        "barcode,product_name,variant,qty,unit_cost\n"
        "1382-335,BBD HH Ag 09,Size - 0-3m,10,25.50\n"
        "1383-335,,Size - 3-6m,5,15.00\n"
        ",Orphan row,,3,1\n"
        "\n"
        "235-499,HH_Bathtub Medium 351,,abc,\n"
    )


def frame(payload: dict[str, Any]) -> bytes:
    """Encode one event the way the ingestion service does."""
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def stream_bytes(payloads: Iterable[dict[str, Any]]) -> bytes:
    return b"".join(frame(p) for p in payloads)


class FakeResponse:
    """Stand-in for requests.Response with a streamed body."""

    def __init__(
        self,
        chunks: Iterable[bytes] = (),
        status_code: int = 200,
        json_body: Any = None,
        error: Exception | None = None,
    ) -> None:
        self._chunks = list(chunks)
        self.status_code = status_code
        self._json = json_body
        self._error = error
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def iter_content(self, chunk_size=None):
        yield from self._chunks
        if self._error is not None:
            raise self._error

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Records post() calls and answers with a canned response."""

    def __init__(self, response: FakeResponse | None = None, exc: Exception | None = None) -> None:
        self.response = response or FakeResponse()
        self.exc = exc
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response

    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


@pytest.fixture()
def make_session():
    def _make(payloads: Iterable[dict[str, Any]] = (), **kwargs: Any) -> FakeSession:
        chunks = kwargs.pop("chunks", None)
        if chunks is None:
            chunks = [stream_bytes(payloads)]
        return FakeSession(FakeResponse(chunks=chunks, **kwargs))
    return _make


@pytest.fixture()
def happy_stream() -> list[dict[str, Any]]:
    return [
        {"type": "start", "total": 3, "current": 0, "message": "Starting bulk upload..."},
        {"type": "progress", "total": 3, "current": 1, "percentage": 33, "barcode": "A1", "product_name": "One"},
        {"type": "success", "row": 1, "message": "Successfully inserted One (OPENING)"},
        {"type": "progress", "total": 3, "current": 2, "percentage": 67, "barcode": "B2", "product_name": "Two"},
        {"type": "error", "row": 2, "message": "Failed to insert row 2: Duplicate entry 'B2' for key 'barcode'"},
        {"type": "progress", "total": 3, "current": 3, "percentage": 100, "barcode": "C3", "product_name": "Three"},
        {"type": "success", "row": 3, "message": "Successfully inserted Three (OPENING)"},
        {
            "type": "complete",
            "total": 3,
            "inserted": 2,
            "failed": 1,
            "successRows": [{"row": 1, "barcode": "A1"}, {"row": 3, "barcode": "C3"}],
            "failedRows": [{"row": 2, "reason": "Duplicate entry 'B2' for key 'barcode'", "data": {"barcode": "B2"}}],
            "message": "Upload complete! 2 inserted, 1 failed",
        },
    ]


@pytest.fixture()
def encode_stream():
    return stream_bytes


@pytest.fixture()
def fake_response():
    return FakeResponse


@pytest.fixture()
def fake_session():
    return FakeSession


@pytest.fixture()
def clean_env(monkeypatch):
    """Drop STOCK_IMPORT_* overrides inherited from the shell."""
    monkeypatch.delenv("STOCK_IMPORT_BASE_URL", raising=False)
    monkeypatch.delenv("STOCK_IMPORT_WAREHOUSE", raising=False)


@pytest.fixture()
def patched_session(monkeypatch, make_session, clean_env):
    """Install a FakeSession wherever the client creates its own requests.Session."""
    def _install(payloads):
        session = make_session(payloads)
        monkeypatch.setattr("stock_import.client.submit.requests.Session", lambda: session)
        return session
    return _install

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import requests

from ..config.loader import EndpointConfig
from ..models.events import CompleteEvent
from ..models.records import NormalizedRecord
from ..models.summary import ImportSummary
from ..services.aggregator import ResultAggregator
from .frames import iter_events
from .state import ProgressCallback, StreamFatalError, consume_events

"""Submission client for the ingestion service.

One POST per call, never pipelined. The streamed variants read the response
body as `data: <json>` frames and block until the complete event (or a fatal
error). Cancellation is not part of the protocol.

Idle timeout: requests applies the read part of `timeout=(connect, read)` to
every socket read of a streamed body, so EndpointConfig.idle_timeout bounds
the silence between frames, not the total import time.
"""

__all__ = [
    "NetworkError",
    "submit_with_progress",
    "submit_file_with_progress",
    "upload_batch",
]

logger = logging.getLogger(__name__)


class NetworkError(StreamFatalError):
    """Transport failure or non-2xx response; fatal for the whole batch."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP error {response.status_code}"


@contextmanager
def _streamed_post(
    session: requests.Session, url: str, endpoint: EndpointConfig, **kwargs: Any
) -> Iterator[requests.Response]:
    try:
        response = session.post(
            url,
            headers=dict(endpoint.headers),
            stream=True,
            timeout=endpoint.stream_timeout,
            **kwargs,
        )
    except requests.RequestException as e:
        raise NetworkError(f"request to {url} failed: {e}") from e
    try:
        if not response.ok:
            raise NetworkError(_error_message(response), status_code=response.status_code)
        yield response
    finally:
        response.close()


def _read_stream(
    response: requests.Response,
    on_progress: ProgressCallback | None,
    aggregator: ResultAggregator,
) -> ImportSummary:
    try:
        return consume_events(iter_events(response.iter_content(chunk_size=None)), on_progress, aggregator)
    except requests.RequestException as e:
        raise NetworkError(f"progress stream interrupted: {e}") from e


def submit_with_progress(
    records: Sequence[NormalizedRecord],
    on_progress: ProgressCallback | None = None,
    *,
    endpoint: EndpointConfig,
    session: requests.Session | None = None,
) -> ImportSummary:
    """POST a validated batch and follow its progress stream to the end.

    Args:
        records: Valid records in submission order
        on_progress: Called with every decoded event, in arrival order
        endpoint: Ingestion endpoint configuration
        session: Optional requests session (a fresh one is used otherwise)

    Returns:
        ImportSummary built from the complete event

    Raises:
        StreamFatalError: Fatal error event or stream ended before complete
        NetworkError: Transport failure or non-2xx response
    """
    body = {"rows": [r.to_payload() for r in records]}
    aggregator = ResultAggregator(records)
    logger.debug("submitting %d rows to %s", len(records), endpoint.progress_url)
    with _session_scope(session) as s, _streamed_post(s, endpoint.progress_url, endpoint, json=body) as response:
        return _read_stream(response, on_progress, aggregator)


def submit_file_with_progress(
    path: Path,
    warehouse: str,
    on_progress: ProgressCallback | None = None,
    *,
    endpoint: EndpointConfig,
    session: requests.Session | None = None,
) -> ImportSummary:
    """Upload a file as multipart form data and follow the progress stream.

    Parsing and validation happen on the ingestion side in this mode, so the
    summary cannot map rows back to local records.
    """
    logger.debug("uploading %s to %s", path.name, endpoint.progress_url)
    with _session_scope(session) as s, path.open("rb") as fh:
        files = {"file": (path.name, fh, "text/csv")}
        data = {"warehouse": warehouse}
        with _streamed_post(s, endpoint.progress_url, endpoint, files=files, data=data) as response:
            return _read_stream(response, on_progress, ResultAggregator())


def upload_batch(
    records: Sequence[NormalizedRecord],
    *,
    endpoint: EndpointConfig,
    session: requests.Session | None = None,
) -> ImportSummary:
    """One-shot upload without progress streaming.

    The upload path answers with a single JSON document shaped like the
    complete event.
    """
    body = {"rows": [r.to_payload() for r in records]}
    with _session_scope(session) as s:
        try:
            response = s.post(
                endpoint.upload_url,
                json=body,
                headers=dict(endpoint.headers),
                timeout=endpoint.request_timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"request to {endpoint.upload_url} failed: {e}") from e
        if not response.ok:
            raise NetworkError(_error_message(response), status_code=response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise NetworkError(f"invalid JSON response from {endpoint.upload_url}") from e

    if not isinstance(payload, dict) or payload.get("success") is False:
        message = payload.get("message") if isinstance(payload, dict) else None
        raise StreamFatalError(str(message or "upload failed"))

    complete = CompleteEvent(
        inserted=int(payload.get("inserted", 0)),
        failed=int(payload.get("failed", 0)),
        success_rows=[r for r in payload.get("successRows") or [] if isinstance(r, dict)],
        failed_rows=[r for r in payload.get("failedRows") or [] if isinstance(r, dict)],
        message=str(payload.get("message") or ""),
        raw=payload,
    )
    return ResultAggregator(records).build_summary(complete)


@contextmanager
def _session_scope(session: requests.Session | None) -> Iterator[requests.Session]:
    # caller-owned sessions stay open
    if session is not None:
        yield session
        return
    with requests.Session() as own:
        yield own

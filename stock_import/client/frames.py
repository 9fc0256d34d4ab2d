from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from ..models.events import ProgressEvent, parse_event

"""Frame decoder for the `data: <json>` progress stream.

The ingestion service answers a plain POST with a streamed body of
newline-separated frames:

    data: {"type": "start", "total": 3, ...}
    <blank line>
    data: {"type": "progress", "current": 1, ...}

Bytes arrive in arbitrary chunks, so the decoder keeps an incremental UTF-8
decoder and one pending partial line. Lines that do not start with "data: "
are skipped; frames whose JSON does not decode are logged and skipped.

This module knows nothing about the protocol state; see client.state.
"""

__all__ = [
    "DATA_PREFIX",
    "FrameDecoder",
    "iter_frames",
    "iter_events",
]

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


class FrameDecoder:
    """Incremental bytes -> frame payload decoder."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[dict[str, Any]]:
        """Consume a chunk and return the payloads of every completed line."""
        text = self._pending + self._decoder.decode(chunk)
        *lines, self._pending = text.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Decode whatever is left once the stream has ended."""
        text = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return self._parse_lines([text])

    @property
    def pending(self) -> str:
        return self._pending

    def _parse_lines(self, lines: list[str]) -> list[dict[str, Any]]:
        payloads = []
        for line in lines:
            payload = _parse_line(line.rstrip("\r"))
            if payload is not None:
                payloads.append(payload)
        return payloads


def _parse_line(line: str) -> dict[str, Any] | None:
    if not line.startswith(DATA_PREFIX):
        if line.strip():
            logger.debug("ignoring non-data line: %.80s", line)
        return None
    body = line[len(DATA_PREFIX):]
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        logger.warning("ignoring malformed frame: %.80s", body)
        return None
    if not isinstance(payload, dict):
        logger.warning("ignoring non-object frame: %.80s", body)
        return None
    return payload


def iter_frames(chunks: Iterable[bytes]) -> Iterator[dict[str, Any]]:
    """Lazily yield decoded frame payloads from a chunk iterable."""
    decoder = FrameDecoder()
    for chunk in chunks:
        if not chunk:
            continue
        yield from decoder.feed(chunk)
    yield from decoder.flush()


def iter_events(chunks: Iterable[bytes]) -> Iterator[ProgressEvent]:
    """Lazily yield typed progress events; unknown event types are skipped."""
    for payload in iter_frames(chunks):
        event = parse_event(payload)
        if event is not None:
            yield event

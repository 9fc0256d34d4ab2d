from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

"""Progress stream event models.

The ingestion service emits `data: <json>` frames whose payload carries a
`type` tag. Each tag maps to one frozen dataclass below; ProgressEvent is the
union of all of them.

State transitions driven by these events live in stock_import.client.state.
"""

__all__ = [
    "EventType",
    "StartEvent",
    "ProgressUpdateEvent",
    "RowSuccessEvent",
    "RowErrorEvent",
    "CompleteEvent",
    "ProgressEvent",
    "parse_event",
]

logger = logging.getLogger(__name__)


class EventType(Enum):
    START = "start"
    PROGRESS = "progress"
    SUCCESS = "success"
    ERROR = "error"
    COMPLETE = "complete"


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class StartEvent:
    type: ClassVar[EventType] = EventType.START
    total: int
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ProgressUpdateEvent:
    type: ClassVar[EventType] = EventType.PROGRESS
    current: int
    total: int
    percentage: int
    barcode: str = ""
    product_name: str = ""
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class RowSuccessEvent:
    """Informational only; aggregate counts come from the complete event."""
    type: ClassVar[EventType] = EventType.SUCCESS
    row: int | None
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class RowErrorEvent:
    """Row-scoped failure when `row` is set, whole-batch failure otherwise."""
    type: ClassVar[EventType] = EventType.ERROR
    row: int | None
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_fatal(self) -> bool:
        return self.row is None


@dataclass(frozen=True)
class CompleteEvent:
    type: ClassVar[EventType] = EventType.COMPLETE
    inserted: int
    failed: int
    success_rows: list[dict[str, Any]] = field(default_factory=list)
    failed_rows: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    message: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


ProgressEvent = StartEvent | ProgressUpdateEvent | RowSuccessEvent | RowErrorEvent | CompleteEvent


def _row_number(value: Any) -> int | None:
    # Rows are 1-based on the wire; a missing or zero row means "no row".
    row = _as_int(value, 0)
    return row if row > 0 else None


def _dict_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def parse_event(payload: dict[str, Any]) -> ProgressEvent | None:
    """Build a typed event from a decoded frame payload.

    Returns None for payloads without a known `type`.
    """
    tag = payload.get("type")
    try:
        event_type = EventType(tag)
    except ValueError:
        logger.warning("ignoring frame with unknown event type: %r", tag)
        return None

    message = _as_str(payload.get("message"))
    if event_type is EventType.START:
        return StartEvent(total=_as_int(payload.get("total")), message=message, raw=payload)
    if event_type is EventType.PROGRESS:
        return ProgressUpdateEvent(
            current=_as_int(payload.get("current")),
            total=_as_int(payload.get("total")),
            percentage=_as_int(payload.get("percentage")),
            barcode=_as_str(payload.get("barcode")),
            product_name=_as_str(payload.get("product_name")),
            message=message,
            raw=payload,
        )
    if event_type is EventType.SUCCESS:
        return RowSuccessEvent(row=_row_number(payload.get("row")), message=message, raw=payload)
    if event_type is EventType.ERROR:
        return RowErrorEvent(row=_row_number(payload.get("row")), message=message, raw=payload)
    return CompleteEvent(
        inserted=_as_int(payload.get("inserted")),
        failed=_as_int(payload.get("failed")),
        success_rows=_dict_list(payload.get("successRows")),
        failed_rows=_dict_list(payload.get("failedRows")),
        total=_as_int(payload.get("total")),
        message=message,
        raw=payload,
    )

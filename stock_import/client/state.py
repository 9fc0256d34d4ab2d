from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from ..models.events import (
    CompleteEvent,
    ProgressEvent,
    ProgressUpdateEvent,
    RowErrorEvent,
    RowSuccessEvent,
    StartEvent,
)
from ..models.summary import ImportSummary
from ..services.aggregator import ResultAggregator

"""Progress protocol state machine.

States: IDLE -> AWAITING_START -> IN_PROGRESS -> (COMPLETED | FAILED)

- start: IDLE -> AWAITING_START, snapshot {current: 0, total, percentage: 0}
- progress: -> IN_PROGRESS, updates the "currently processing" snapshot
- success: informational
- error with row: non-fatal, recorded by the aggregator
- error without row: -> FAILED, StreamFatalError
- complete: -> COMPLETED, ImportSummary, snapshot cleared
- end of stream before complete: -> FAILED, StreamFatalError
"""

__all__ = [
    "StreamState",
    "StreamFatalError",
    "ProgressSnapshot",
    "ProgressStateMachine",
    "consume_events",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class StreamFatalError(Exception):
    """The batch as a whole failed (fatal error event or truncated stream)."""


class StreamState(Enum):
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({StreamState.COMPLETED, StreamState.FAILED})


@dataclass(frozen=True)
class ProgressSnapshot:
    """In-flight progress; what a UI shows as "currently processing"."""
    current: int
    total: int
    percentage: int
    barcode: str = ""
    product_name: str = ""
    message: str = ""


class ProgressStateMachine:
    def __init__(self, aggregator: ResultAggregator | None = None) -> None:
        self.aggregator = aggregator if aggregator is not None else ResultAggregator()
        self.state = StreamState.IDLE
        self.progress: ProgressSnapshot | None = None
        self.summary: ImportSummary | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def handle(self, event: ProgressEvent) -> ImportSummary | None:
        """Apply one event.

        Returns:
            The ImportSummary once the complete event arrives, None otherwise

        Raises:
            StreamFatalError: On an error event without a row
        """
        if self.is_terminal:
            logger.warning("ignoring %s event after stream reached %s", event.type.value, self.state.value)
            return None

        if isinstance(event, StartEvent):
            self._on_start(event)
        elif isinstance(event, ProgressUpdateEvent):
            self._on_progress(event)
        elif isinstance(event, RowSuccessEvent):
            self.aggregator.record_success(event)
        elif isinstance(event, RowErrorEvent):
            self._on_error(event)
        elif isinstance(event, CompleteEvent):
            return self._on_complete(event)
        return None

    def finish(self) -> ImportSummary:
        """Called when the stream is exhausted."""
        if self.state is StreamState.COMPLETED and self.summary is not None:
            return self.summary
        if self.state is not StreamState.FAILED:
            self.state = StreamState.FAILED
            self.progress = None
        raise StreamFatalError("progress stream ended before the import completed")

    def _on_start(self, event: StartEvent) -> None:
        if self.state is not StreamState.IDLE:
            logger.warning("unexpected start event in state %s", self.state.value)
        self.state = StreamState.AWAITING_START
        self.progress = ProgressSnapshot(current=0, total=event.total, percentage=0, message=event.message)
        logger.info("import started: total=%d %s", event.total, event.message)

    def _on_progress(self, event: ProgressUpdateEvent) -> None:
        if self.state is StreamState.IDLE:
            logger.debug("progress event before start")
        self.state = StreamState.IN_PROGRESS
        if self.progress is not None and event.current < self.progress.current:
            logger.warning(
                "progress went backwards (%d -> %d); keeping %d",
                self.progress.current,
                event.current,
                self.progress.current,
            )
            return
        self.progress = ProgressSnapshot(
            current=event.current,
            total=event.total,
            percentage=event.percentage,
            barcode=event.barcode,
            product_name=event.product_name,
            message=event.message,
        )

    def _on_error(self, event: RowErrorEvent) -> None:
        if event.is_fatal:
            self.state = StreamState.FAILED
            self.progress = None
            raise StreamFatalError(event.message or "import failed")
        outcome = self.aggregator.record_error(event)
        logger.debug("row %d reported error: %s", outcome.row, outcome.message)

    def _on_complete(self, event: CompleteEvent) -> ImportSummary:
        self.summary = self.aggregator.build_summary(event)
        self.state = StreamState.COMPLETED
        self.progress = None
        return self.summary


def consume_events(
    events: Iterable[ProgressEvent],
    on_progress: ProgressCallback | None = None,
    aggregator: ResultAggregator | None = None,
) -> ImportSummary:
    """Drive a fresh state machine over `events` until the complete event.

    `on_progress` sees every event, in arrival order, before it is applied.
    Iteration stops at the complete event.

    Raises:
        StreamFatalError: On a fatal error event or if `events` runs out first
    """
    machine = ProgressStateMachine(aggregator)
    for event in events:
        if on_progress is not None:
            on_progress(event)
        summary = machine.handle(event)
        if summary is not None:
            return summary
    return machine.finish()

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.events import CompleteEvent, RowErrorEvent, RowSuccessEvent
from ..models.records import NormalizedRecord
from ..models.summary import ImportSummary, RowOutcome

"""Result aggregation for one submitted batch.

Row-level events seen on the stream are collected while it runs; the summary
is built from the terminal `complete` event, which is the only authority for
counts. When the terminal event carries no failedRows list, the row errors
observed on the stream stand in for it.
"""

__all__ = [
    "ResultAggregator",
]

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Collects per-row outcomes and builds the final ImportSummary.

    Args:
        submitted: The records in submission order. Used to map the server's
            1-based batch position back to the source row and barcode.
    """

    def __init__(self, submitted: Sequence[NormalizedRecord] | None = None) -> None:
        self._submitted = list(submitted or [])
        self.row_errors: list[RowOutcome] = []
        self.row_successes = 0

    def record_error(self, event: RowErrorEvent) -> RowOutcome:
        outcome = self._outcome(event.row or 0, event.message, {})
        self.row_errors.append(outcome)
        return outcome

    def record_success(self, event: RowSuccessEvent) -> None:
        self.row_successes += 1

    def build_summary(self, event: CompleteEvent) -> ImportSummary:
        if event.failed_rows:
            failed_rows = [
                self._outcome(
                    _as_row(item.get("row")),
                    str(item.get("reason") or item.get("message") or ""),
                    item.get("data") if isinstance(item.get("data"), dict) else {},
                )
                for item in event.failed_rows
            ]
        else:
            failed_rows = list(self.row_errors)

        if event.failed != len(failed_rows):
            logger.debug(
                "complete event reports failed=%d but %d failed rows are known",
                event.failed,
                len(failed_rows),
            )

        return ImportSummary(
            success=True,
            inserted=event.inserted,
            failed=event.failed,
            success_rows=list(event.success_rows),
            failed_rows=failed_rows,
            message=event.message,
        )

    def _outcome(self, row: int, message: str, data: dict[str, Any]) -> RowOutcome:
        record = self._record_at(row)
        barcode = record.barcode if record is not None else (data.get("barcode") or None)
        return RowOutcome(
            row=row,
            message=message,
            barcode=barcode,
            source_row=record.row_index if record is not None else None,
            data=data,
        )

    def _record_at(self, row: int) -> NormalizedRecord | None:
        if 1 <= row <= len(self._submitted):
            return self._submitted[row - 1]
        return None


def _as_row(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0

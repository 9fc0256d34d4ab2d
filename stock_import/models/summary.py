from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""ImportSummary model returned to callers when the progress stream completes.

Counts are authoritative only from the terminal `complete` event. Failed rows
whose message marks a duplicate key are reported as "updated" in user-facing
text because the ingestion side upserts them.
"""

__all__ = [
    "DUPLICATE_MARKER",
    "DEFAULT_PREVIEW_LIMIT",
    "RowOutcome",
    "ImportSummary",
]

DUPLICATE_MARKER = "Duplicate entry"
DEFAULT_PREVIEW_LIMIT = 5


@dataclass(frozen=True)
class RowOutcome:
    """A single problem row reported by the ingestion service."""
    row: int  # 1-based position within the submitted batch
    message: str
    barcode: str | None = None
    source_row: int | None = None  # row_index of the submitted record, if known
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_duplicate(self) -> bool:
        return DUPLICATE_MARKER in self.message

    def describe(self) -> str:
        where = f"Row {self.source_row if self.source_row is not None else self.row}"
        if self.barcode:
            where += f" ({self.barcode})"
        if self.is_duplicate:
            return f"{where}: updated existing record"
        return f"{where}: failed: {self.message}"


@dataclass(frozen=True)
class ImportSummary:
    success: bool
    inserted: int
    failed: int
    success_rows: list[dict[str, Any]] = field(default_factory=list)
    failed_rows: list[RowOutcome] = field(default_factory=list)
    message: str = ""

    @property
    def updated(self) -> int:
        """Failed rows that were duplicate-key upserts."""
        return sum(1 for r in self.failed_rows if r.is_duplicate)

    @property
    def hard_failed(self) -> int:
        return max(self.failed - self.updated, 0)

    def preview(self, limit: int = DEFAULT_PREVIEW_LIMIT) -> list[str]:
        return [r.describe() for r in self.failed_rows[:limit]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "inserted": self.inserted,
            "failed": self.failed,
            "successRows": list(self.success_rows),
            "failedRows": [
                {"row": r.row, "reason": r.message, "barcode": r.barcode, "sourceRow": r.source_row}
                for r in self.failed_rows
            ],
            "message": self.message,
        }

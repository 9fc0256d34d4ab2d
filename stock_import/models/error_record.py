from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""One line of the JSON Lines error log.

Keys are fixed: timestamp, source, row, error_type, message. Errors that
belong to the batch as a whole (stream or transport failures) carry row -1.
"""

__all__ = [
    "ErrorRecord",
    "BATCH_LEVEL_ROW",
]

BATCH_LEVEL_ROW = -1


def _utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str  # ISO8601, UTC, "Z" suffix
    source: str  # imported file name, "<input>" for in-memory text
    row: int  # source row_index (1-based); BATCH_LEVEL_ROW for batch errors
    error_type: str  # one of logging.error_log.ERROR_TYPES
    message: str

    @staticmethod
    def create(source: str, row: int, error_type: str, message: str) -> ErrorRecord:
        return ErrorRecord(timestamp=_utc_now(), source=source, row=row, error_type=error_type, message=message)

    @staticmethod
    def for_batch(source: str, error_type: str, message: str) -> ErrorRecord:
        """Record for a failure no single row is responsible for."""
        return ErrorRecord.create(source, BATCH_LEVEL_ROW, error_type, message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

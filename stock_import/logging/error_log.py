from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""JSON Lines error log for one import run.

Records collect in memory while the run goes on and are appended to
`<dir>/errors-YYYYMMDD-HHMMSS.log` (UTC stamp of the first flush) when the
run ends. A run without errors leaves no file behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "ERROR_TYPES",
]

DEFAULT_LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

ERROR_TYPES = (
    "VALIDATION_ERROR",
    "ROW_SUBMISSION_ERROR",
    "DUPLICATE_ENTRY",
    "STREAM_FATAL",
    "NETWORK_ERROR",
)


class ErrorLogBuffer:
    """Buffers ErrorRecords for a single run; not shared between threads."""

    def __init__(self, logs_dir: Path | str = DEFAULT_LOGS_DIR) -> None:
        self.logs_dir = Path(logs_dir)
        self._pending: list[ErrorRecord] = []
        self._path: Path | None = None

    @property
    def file_path(self) -> Path:
        """Target file; the name is fixed the first time it is asked for."""
        if self._path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._path = self.logs_dir / f"errors-{stamp}.log"
        return self._path

    def append(self, record: ErrorRecord) -> None:
        if record.error_type not in ERROR_TYPES:
            raise ValueError(f"unknown error_type: {record.error_type}")
        self._pending.append(record)

    def __len__(self) -> int:
        return len(self._pending)

    def flush(self) -> Path | None:
        """Append pending records to the log file.

        Returns:
            The file written to, or None when there was nothing to write
        """
        if not self._pending:
            return None
        target = self.file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(r.to_json_line() + "\n" for r in self._pending)
        with target.open("a", encoding="utf-8") as f:
            f.write(lines)
        self._pending.clear()
        return target

"""Domain models for the bulk stock import pipeline.

Row records, progress stream events, the import summary and the error log
record used throughout the package.
"""

from .error_record import ErrorRecord
from .events import (
    CompleteEvent,
    EventType,
    ProgressEvent,
    ProgressUpdateEvent,
    RowErrorEvent,
    RowSuccessEvent,
    StartEvent,
)
from .records import (
    AutoCorrections,
    CorrectionCounts,
    ImportBatch,
    InvalidRow,
    NormalizedRecord,
    RawRecord,
    ValidationResult,
)
from .summary import ImportSummary, RowOutcome

__all__ = [
    # Row models
    "RawRecord",
    "NormalizedRecord",
    "AutoCorrections",
    "ValidationResult",
    "InvalidRow",
    "CorrectionCounts",
    "ImportBatch",
    # Stream events
    "EventType",
    "StartEvent",
    "ProgressUpdateEvent",
    "RowSuccessEvent",
    "RowErrorEvent",
    "CompleteEvent",
    "ProgressEvent",
    # Results
    "ImportSummary",
    "RowOutcome",
    "ErrorRecord",
]

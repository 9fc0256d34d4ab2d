"""Bulk stock/catalog import pipeline.

parse -> normalize_and_validate -> submit_with_progress, glued together by
run_import.
"""

from .client.state import StreamFatalError
from .client.submit import NetworkError, submit_with_progress
from .services.orchestrator import ImportResult, run_import
from .tabular.parser import parse
from .tabular.validator import NoValidRowsError, normalize_and_validate

__all__ = [
    "parse",
    "normalize_and_validate",
    "submit_with_progress",
    "run_import",
    "ImportResult",
    "NoValidRowsError",
    "StreamFatalError",
    "NetworkError",
]

__version__ = "0.1.0"

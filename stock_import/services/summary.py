from __future__ import annotations

from ..models.records import ImportBatch
from ..models.summary import ImportSummary

"""SUMMARY line rendering.

Format:
SUMMARY rows={total} valid={valid} invalid={invalid} inserted={inserted}
failed={failed} updated={updated} corrections={corrections} elapsed_sec={elapsed}

`failed` excludes duplicate-key rows, which are counted as `updated`.
"""

__all__ = [
    "render_summary_line",
    "format_seconds",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation or trailing zeros.

    >>> format_seconds(2.0)
    '2'
    >>> format_seconds(0.000123)
    '0.000123'
    """
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(batch: ImportBatch, summary: ImportSummary, elapsed_seconds: float) -> str:
    return (
        f"SUMMARY rows={batch.total_rows} "
        f"valid={batch.valid_rows} "
        f"invalid={len(batch.invalid_rows)} "
        f"inserted={summary.inserted} "
        f"failed={summary.hard_failed} "
        f"updated={summary.updated} "
        f"corrections={batch.corrections.total} "
        f"elapsed_sec={format_seconds(elapsed_seconds)}"
    )

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from ..models.records import (
    AutoCorrections,
    CorrectionCounts,
    ImportBatch,
    InvalidRow,
    NormalizedRecord,
    RawRecord,
    ValidationResult,
)
from .field_map import DEFAULT_SYNONYMS, HeaderSynonyms
from .normalizer import normalize

"""Validation & auto-correction engine.

Lenient policy: a missing barcode (or a missing warehouse context) is the only
thing that makes a row invalid. Every other defect is repaired with a default
and flagged in AutoCorrections:

- product_name missing -> "Product {barcode}"
- qty missing/unparseable -> 0
- unit_cost missing/unparseable -> 0.0

validate() is pure: it returns a repaired copy and leaves its input alone.
Feeding the repaired copy back in is a no-op.
"""

__all__ = [
    "BARCODE_REQUIRED",
    "WAREHOUSE_NOT_SET",
    "NoValidRowsError",
    "validate",
    "normalize_and_validate",
    "build_batch",
]

logger = logging.getLogger(__name__)

BARCODE_REQUIRED = "Barcode is required"
WAREHOUSE_NOT_SET = "Warehouse not set"

# invalid-row reasons quoted in the NoValidRowsError message
ERROR_SAMPLE_SIZE = 3


class NoValidRowsError(Exception):
    """Raised before any network call when no row survived validation."""

    def __init__(self, invalid_rows: list[InvalidRow], total_rows: int) -> None:
        self.invalid_rows = invalid_rows
        self.total_rows = total_rows
        if total_rows == 0:
            message = "no data rows found"
        else:
            sample = "; ".join(r.describe() for r in invalid_rows[:ERROR_SAMPLE_SIZE])
            message = f"no valid rows to import ({len(invalid_rows)} of {total_rows} invalid): {sample}"
        super().__init__(message)


def validate(record: NormalizedRecord) -> tuple[NormalizedRecord, ValidationResult]:
    """Check the hard invariants and apply defaults.

    Returns:
        (repaired_record, result)
    """
    errors: list[str] = []
    if not record.barcode:
        errors.append(BARCODE_REQUIRED)
    if not record.warehouse:
        errors.append(WAREHOUSE_NOT_SET)

    changes: dict[str, object] = {}
    name_generated = False
    if not record.product_name:
        changes["product_name"] = f"Product {record.barcode}"
        name_generated = True
    qty_defaulted = record.qty is None
    if qty_defaulted:
        changes["qty"] = 0
    cost_defaulted = record.unit_cost is None
    if cost_defaulted:
        changes["unit_cost"] = 0.0

    repaired = dataclasses.replace(record, **changes) if changes else record
    result = ValidationResult(
        is_valid=not errors,
        errors=errors,
        auto_corrections=AutoCorrections(
            product_name_generated=name_generated,
            quantity_defaulted=qty_defaulted,
            cost_defaulted=cost_defaulted,
        ),
    )
    return repaired, result


def normalize_and_validate(
    raw: RawRecord, synonyms: HeaderSynonyms = DEFAULT_SYNONYMS
) -> tuple[NormalizedRecord, ValidationResult]:
    return validate(normalize(raw, synonyms))


def build_batch(
    raw_records: Iterable[RawRecord], synonyms: HeaderSynonyms = DEFAULT_SYNONYMS
) -> ImportBatch:
    """Normalize and validate every row, partition valid/invalid.

    Raises:
        NoValidRowsError: If no row is valid (nothing would be submitted)
    """
    valid: list[NormalizedRecord] = []
    invalid: list[InvalidRow] = []
    counts = CorrectionCounts()
    total = 0

    for raw in raw_records:
        total += 1
        record, result = normalize_and_validate(raw, synonyms)
        if not result.is_valid:
            invalid.append(InvalidRow(row_index=raw.row_index, reasons=list(result.errors)))
            continue
        if result.auto_corrections.any():
            logger.debug(
                "row %d auto-corrected: name=%s qty=%s cost=%s",
                raw.row_index,
                result.auto_corrections.product_name_generated,
                result.auto_corrections.quantity_defaulted,
                result.auto_corrections.cost_defaulted,
            )
        counts = counts.add(result.auto_corrections)
        valid.append(record)

    if not valid:
        raise NoValidRowsError(invalid, total)

    return ImportBatch(records=valid, total_rows=total, invalid_rows=invalid, corrections=counts)

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

"""Row-level domain models for the bulk stock import pipeline.

RawRecord is what the tabular parser emits, NormalizedRecord is what the
normalizer/validator produce and what is sent to the ingestion service.
ImportBatch is the once-per-call container handed to the submission client.
"""

__all__ = [
    "RawRecord",
    "NormalizedRecord",
    "AutoCorrections",
    "ValidationResult",
    "InvalidRow",
    "CorrectionCounts",
    "ImportBatch",
]


@dataclass(frozen=True)
class RawRecord:
    """One non-blank data line after tokenization.

    Field names are the lower-cased, trimmed header tokens; the canonical
    mapping happens later in the normalizer. `fields` is copied into a
    read-only mapping, so a record cannot change after parsing.
    """
    fields: Mapping[str, str]  # header -> raw token (trimmed, "" when missing)
    warehouse: str  # caller context, injected, never read from the row
    row_index: int  # 1-based position among non-blank data lines

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str, default: str = "") -> str:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class NormalizedRecord:
    """Typed row. None marks a value that validation still has to default."""
    barcode: str
    product_name: str | None
    variant: str
    qty: int | None
    unit_cost: float | None
    warehouse: str
    row_index: int
    extras: dict[str, str] = field(default_factory=dict)  # pass-through columns

    def to_payload(self) -> dict[str, Any]:
        """JSON object for the ingestion service (row_index stays local)."""
        payload: dict[str, Any] = dict(self.extras)
        payload.update(
            barcode=self.barcode,
            product_name=self.product_name,
            variant=self.variant,
            qty=self.qty,
            unit_cost=self.unit_cost,
            warehouse=self.warehouse,
        )
        return payload


@dataclass(frozen=True)
class AutoCorrections:
    product_name_generated: bool = False
    quantity_defaulted: bool = False
    cost_defaulted: bool = False

    def any(self) -> bool:
        return self.product_name_generated or self.quantity_defaulted or self.cost_defaulted


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: list[str]
    auto_corrections: AutoCorrections


@dataclass(frozen=True)
class InvalidRow:
    row_index: int
    reasons: list[str]

    def describe(self) -> str:
        return f"row {self.row_index}: {'; '.join(self.reasons)}"


@dataclass(frozen=True)
class CorrectionCounts:
    product_name_generated: int = 0
    quantity_defaulted: int = 0
    cost_defaulted: int = 0

    @property
    def total(self) -> int:
        return self.product_name_generated + self.quantity_defaulted + self.cost_defaulted

    def add(self, corrections: AutoCorrections) -> CorrectionCounts:
        return CorrectionCounts(
            product_name_generated=self.product_name_generated + int(corrections.product_name_generated),
            quantity_defaulted=self.quantity_defaulted + int(corrections.quantity_defaulted),
            cost_defaulted=self.cost_defaulted + int(corrections.cost_defaulted),
        )


@dataclass(frozen=True)
class ImportBatch:
    """Validated rows ready for submission plus batch-level accounting."""
    records: list[NormalizedRecord]  # valid rows, source order
    total_rows: int  # parsed data rows (valid + invalid)
    invalid_rows: list[InvalidRow]  # dropped before submission
    corrections: CorrectionCounts

    @property
    def valid_rows(self) -> int:
        return len(self.records)

    def payloads(self) -> list[dict[str, Any]]:
        return [r.to_payload() for r in self.records]

from __future__ import annotations

"""Downloadable CSV template. Only the barcode column is mandatory in data rows."""

__all__ = [
    "TEMPLATE_HEADER",
    "csv_template",
]

TEMPLATE_HEADER = "barcode,product_name,variant,qty,unit_cost"

_SAMPLE_ROWS = (
    "1382-335,BBD HH Ag 09,Size - 0-3m,10,25.50",
    "1383-335,,Size - 3-6m,5,15.00",
    "235-499,HH_Bathtub Medium 351,,20,30.75",
    "2460-3499,,,8,12.00",
    "SAMPLE-001,,,0,0",
)


def csv_template(*, include_samples: bool = True) -> str:
    lines = [TEMPLATE_HEADER]
    if include_samples:
        lines.extend(_SAMPLE_ROWS)
    return "\n".join(lines)

from __future__ import annotations

import math
import re

from ..models.records import NormalizedRecord, RawRecord
from .field_map import CORE_FIELDS, DEFAULT_SYNONYMS, HeaderSynonyms

"""Field normalization: canonical names + type coercion.

Coercion never rejects a row. Values that cannot be interpreted come out as
None and are defaulted (and counted) by the validator.

| field        | coercion                                           |
|--------------|----------------------------------------------------|
| barcode      | trim                                               |
| product_name | collapse whitespace runs, trim ("" -> None)        |
| variant      | trim                                               |
| qty          | int(); else first signed integer run; abs()        |
| unit_cost    | leading decimal number (finite only); abs()        |
| warehouse    | taken from the record context, never from the row  |
"""

__all__ = [
    "normalize",
    "coerce_qty",
    "coerce_unit_cost",
    "clean_product_name",
]

_WHITESPACE = re.compile(r"\s+")
_SIGNED_INT = re.compile(r"-?\d+")
_LEADING_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def clean_product_name(value: str) -> str | None:
    cleaned = _WHITESPACE.sub(" ", value).strip()
    return cleaned or None


def coerce_qty(value: str) -> int | None:
    """Parse a quantity leniently.

    >>> coerce_qty("12abc")
    12
    >>> coerce_qty("abc") is None
    True
    >>> coerce_qty("-3")
    3
    """
    text = value.strip()
    if not text:
        return None
    try:
        qty = int(text)
    except ValueError:
        match = _SIGNED_INT.search(text)
        if match is None:
            return None
        qty = int(match.group(0))
    return abs(qty)


def coerce_unit_cost(value: str) -> float | None:
    """Read the leading decimal number of a cost cell.

    Trailing text such as a currency code is ignored.

    >>> coerce_unit_cost("25.50 USD")
    25.5
    >>> coerce_unit_cost("1_000")
    1.0
    """
    match = _LEADING_DECIMAL.match(value.strip())
    if match is None:
        return None
    cost = float(match.group(0))
    if not math.isfinite(cost):
        return None
    return abs(cost)


def normalize(raw: RawRecord, synonyms: HeaderSynonyms = DEFAULT_SYNONYMS) -> NormalizedRecord:
    """Map a RawRecord onto the canonical NormalizedRecord struct.

    Columns that are not one of the core fields are passed through in
    `extras` under their canonical spelling. When several headers resolve to
    the same canonical field the first non-blank value wins.
    """
    values: dict[str, str] = {}
    extras: dict[str, str] = {}
    for header, raw_value in raw.fields.items():
        name = synonyms.canonical(header)
        target = values if name in CORE_FIELDS else extras
        if target.get(name):
            continue
        target[name] = raw_value

    return NormalizedRecord(
        barcode=values.get("barcode", "").strip(),
        product_name=clean_product_name(values.get("product_name", "")),
        variant=values.get("variant", "").strip(),
        qty=coerce_qty(values.get("qty", "")),
        unit_cost=coerce_unit_cost(values.get("unit_cost", "")),
        warehouse=(raw.warehouse or "").strip(),
        row_index=raw.row_index,
        extras=extras,
    )

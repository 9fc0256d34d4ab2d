from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

"""Header synonym table.

Upstream spreadsheets spell the same column many ways ("Quantity", "stock",
"Unit Cost"...). This table maps every recognized spelling to one canonical
field name. It is data, not tokenizer logic, so it can be extended from the
config file and tested on its own.
"""

__all__ = [
    "CORE_FIELDS",
    "DEFAULT_SYNONYMS",
    "HeaderSynonyms",
    "canonical_header",
]

CORE_FIELDS = ("barcode", "product_name", "variant", "qty", "unit_cost")

_WHITESPACE = re.compile(r"\s+")


class HeaderSynonyms:
    """Lookup from lower-cased header spelling to canonical field name."""

    def __init__(self, table: Mapping[str, Iterable[str]]) -> None:
        self._table: dict[str, tuple[str, ...]] = {
            canonical: tuple(variants) for canonical, variants in table.items()
        }
        self._lookup: dict[str, str] = {}
        for canonical, variants in self._table.items():
            self._lookup[_clean(canonical)] = canonical
            for variant in variants:
                self._lookup[_clean(variant)] = canonical

    def canonical(self, header: str) -> str:
        """Return the canonical name for `header`.

        Unrecognized headers are kept verbatim with whitespace runs replaced
        by underscores.
        """
        key = _clean(header)
        found = self._lookup.get(key)
        if found is not None:
            return found
        return _WHITESPACE.sub("_", key)

    def with_extra(self, extra: Mapping[str, Iterable[str]] | None) -> HeaderSynonyms:
        """Return a new table with `extra` variants merged in."""
        if not extra:
            return self
        merged = {k: list(v) for k, v in self._table.items()}
        for canonical, variants in extra.items():
            merged.setdefault(canonical, [])
            merged[canonical].extend(v for v in variants if v not in merged[canonical])
        return HeaderSynonyms(merged)

    def as_dict(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._table.items()}


def _clean(header: str) -> str:
    return header.strip().lower()


DEFAULT_SYNONYMS = HeaderSynonyms(
    {
        "product_name": ["product name", "productname", "name"],
        "qty": ["quantity", "amount", "stock"],
        "unit_cost": ["cost", "price", "unit cost", "unitcost"],
        "barcode": [],
        "variant": [],
    }
)


def canonical_header(header: str, synonyms: HeaderSynonyms = DEFAULT_SYNONYMS) -> str:
    return synonyms.canonical(header)

from __future__ import annotations

import logging

from ..models.records import RawRecord

"""Line-oriented CSV tokenizer.

Rules:
- The text is split into lines first; whitespace-only lines are dropped.
- The first remaining line is the header (tokens lower-cased and trimmed).
- Each data line goes through a quote-aware scanner: a double quote toggles
  "inside quotes", commas inside quotes do not split, quote characters are
  removed and every token is trimmed.
- Short rows are right-padded with "" up to `min_columns`.

Known limitation: because lines are split before tokenizing, a quoted field
holding a literal newline desynchronizes the rest of the file. This is not
repaired here; a line that ends inside an open quote is reported with a
warning so the operator can fix the source file.

A doubled quote inside a quoted field (`"12"" pipe"`) toggles twice, so the
literal quote character is lost (`12 pipe`) while the field boundaries stay
correct. Spreadsheet cells rendered to CSV by the excel adapter are affected
the same way.
"""

__all__ = [
    "MIN_COLUMNS",
    "parse",
    "split_line",
]

logger = logging.getLogger(__name__)

# barcode, product_name, variant, qty must always be addressable
MIN_COLUMNS = 4


def split_line(line: str) -> tuple[list[str], bool]:
    """Tokenize one CSV line.

    Returns:
        (tokens, unterminated) where `unterminated` is True when the line
        ended inside a quoted field
    """
    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            tokens.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    tokens.append("".join(current).strip())
    return tokens, in_quotes


def parse(text: str, warehouse: str, *, min_columns: int = MIN_COLUMNS) -> list[RawRecord]:
    """Parse CSV text into RawRecords keyed by (lower-cased) header.

    Args:
        text: Whole file contents
        warehouse: Warehouse context injected into every record
        min_columns: Right-pad rows with fewer tokens than this

    Returns:
        One RawRecord per non-blank data line, in file order
    """
    lines = [ln.rstrip("\r") for ln in text.split("\n")]
    lines = [ln for ln in lines if ln.strip()]
    if not lines:
        return []

    header_tokens, _ = split_line(lines[0])
    headers = [h.lower() for h in header_tokens]
    logger.debug("csv headers: %s", headers)

    records: list[RawRecord] = []
    for row_index, line in enumerate(lines[1:], start=1):
        tokens, unterminated = split_line(line)
        if unterminated:
            logger.warning(
                "row %d ends inside a quoted field; quoted line breaks are not supported "
                "and following rows may be misaligned",
                row_index,
            )
        if len(tokens) < min_columns:
            logger.debug("row %d has %d columns, padded to %d", row_index, len(tokens), min_columns)
            tokens.extend([""] * (min_columns - len(tokens)))

        fields: dict[str, str] = {}
        for position, header in enumerate(headers):
            if header in fields:
                # repeated header: first non-blank value wins
                if not fields[header] and position < len(tokens):
                    fields[header] = tokens[position]
                continue
            fields[header] = tokens[position] if position < len(tokens) else ""
        records.append(RawRecord(fields=fields, warehouse=warehouse, row_index=row_index))

    return records

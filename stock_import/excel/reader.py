from __future__ import annotations

from pathlib import Path

import pandas as pd

"""Source file adapter.

The pipeline core only understands CSV text. Spreadsheets are turned into
equivalent CSV text here with pandas: first row as header, every cell read as
a string, empty cells as "", and line breaks inside cells flattened to a space
(the core tokenizer does not support quoted line breaks). A double quote inside
a cell is written doubled and comes out of the tokenizer removed.
"""

__all__ = [
    "CSV_SUFFIXES",
    "SPREADSHEET_SUFFIXES",
    "UnsupportedSourceError",
    "SpreadsheetReadError",
    "read_spreadsheet_text",
    "read_source_text",
]

CSV_SUFFIXES = {".csv", ".txt"}
SPREADSHEET_SUFFIXES = {".xlsx", ".xls"}


class UnsupportedSourceError(Exception):
    """Raised for files that are neither CSV nor spreadsheets."""


class SpreadsheetReadError(Exception):
    """Raised when the spreadsheet engine cannot open or parse a workbook."""


def read_spreadsheet_text(path: Path, sheet: str | int = 0) -> str:
    """Read one sheet and render it as CSV text for the tabular parser."""
    try:
        df = pd.read_excel(path, sheet_name=sheet, dtype=str, keep_default_na=False)
    except Exception as e:
        # engines raise their own types (xlrd, zipfile, struct), plus ImportError when absent
        raise SpreadsheetReadError(f"cannot read spreadsheet {path.name}: {e}") from e
    df.columns = [str(c).strip() for c in df.columns]
    df = df.replace(r"[\r\n]+", " ", regex=True)
    return df.to_csv(index=False, lineterminator="\n")


def read_source_text(path: Path, sheet: str | int = 0) -> str:
    suffix = path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        # utf-8-sig drops the BOM spreadsheet exports like to prepend
        return path.read_text(encoding="utf-8-sig")
    if suffix in SPREADSHEET_SUFFIXES:
        return read_spreadsheet_text(path, sheet=sheet)
    raise UnsupportedSourceError(f"unsupported file type: {path.name}")

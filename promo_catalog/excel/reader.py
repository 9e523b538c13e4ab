from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import pandas as pd

from promo_catalog.errors import SchemaError, SpreadsheetReadError

"""Spreadsheet reader.

Reads the first sheet (or a named one) without letting pandas pick a header:
header detection belongs to the schema mapper, which scans the first rows for
SKU-like labels. Output is a plain list of row arrays with NaN -> None.
"""

__all__ = [
    "read_sheet_rows",
    "dataframe_to_rows",
]

CSV_SUFFIXES = {".csv", ".txt"}


def dataframe_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Convert a header-less DataFrame into row arrays (NaN/NaT -> None)."""
    obj = df.astype(object)
    return obj.where(pd.notna(obj), None).values.tolist()


def read_sheet_rows(
    source: Path | bytes,
    sheet: str | int | None = None,
    *,
    csv: bool | None = None,
) -> list[list[Any]]:
    """Read spreadsheet cells as row arrays.

    Parameters
    ----------
    source: ファイルパス、またはアップロードされた生バイト列
    sheet: シート名/番号 (None なら先頭シート)
    csv: CSV として読むか (None ならパスの拡張子で判定、バイト列は Excel 扱い)

    Raises
    ------
    SpreadsheetReadError: file missing or not a readable workbook
    SchemaError: workbook has no rows at all
    """
    if csv is None:
        csv = isinstance(source, Path) and source.suffix.lower() in CSV_SUFFIXES
    if isinstance(source, Path) and not source.exists():
        raise SpreadsheetReadError(f"file not found: {source}")

    handle: Any = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        if csv:
            df = pd.read_csv(handle, header=None, dtype=object, keep_default_na=True)
        else:
            df = pd.read_excel(handle, sheet_name=sheet if sheet is not None else 0, header=None)
    except Exception as e:
        raise SpreadsheetReadError(f"unreadable spreadsheet: {e}") from e

    rows = dataframe_to_rows(df)
    if not rows:
        raise SchemaError("file appears empty or unreadable")
    return rows

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

from promo_catalog.errors import SchemaError, SpreadsheetReadError
from promo_catalog.excel.reader import dataframe_to_rows, read_sheet_rows
from promo_catalog.excel.schema_mapper import map_rows
from promo_catalog.services.assembler import derive_title


def test_read_first_sheet_without_header_inference(sample_excel: Path):
    rows = read_sheet_rows(sample_excel)
    assert rows[0][0] == "Consumer Offer Plan"
    assert rows[1] == [None] * 6
    assert rows[2] == ["SKU", "Product Name", "Price", "Mechanics", "Image", "Month"]
    assert rows[4][:4] == ["1001", "Vitamin C 1000mg", "100", "20% OFF"]


def test_read_named_sheet(temp_workdir: Path):
    path = temp_workdir / "data" / "multi.xlsx"
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame([["ignored"]]).to_excel(writer, sheet_name="Cover", header=False, index=False)
        pd.DataFrame([["SKU", "Name", "Price"], ["A1", "Soap", 5]]).to_excel(
            writer, sheet_name="Offers", header=False, index=False
        )

    rows = read_sheet_rows(path, sheet="Offers")
    assert rows == [["SKU", "Name", "Price"], ["A1", "Soap", 5]]


def test_read_uploaded_bytes(sample_excel: Path):
    rows = read_sheet_rows(sample_excel.read_bytes())
    assert rows[2][0] == "SKU"


def test_read_csv_by_suffix(temp_workdir: Path):
    path = temp_workdir / "data" / "offers.csv"
    path.write_text("SKU,Name,Price\nA1,Soap,5\nA2,,7\n", encoding="utf-8")
    rows = read_sheet_rows(path)
    assert rows == [["SKU", "Name", "Price"], ["A1", "Soap", "5"], ["A2", None, "7"]]


def test_missing_file(temp_workdir: Path):
    with pytest.raises(SpreadsheetReadError):
        read_sheet_rows(temp_workdir / "data" / "nope.xlsx")


def test_unreadable_workbook(temp_workdir: Path):
    path = temp_workdir / "data" / "broken.xlsx"
    path.write_text("this is not a workbook", encoding="utf-8")
    with pytest.raises(SpreadsheetReadError):
        read_sheet_rows(path)


def test_empty_sheet(excel_factory):
    path = excel_factory("empty.xlsx", [])
    with pytest.raises(SchemaError) as e:
        read_sheet_rows(path)
    assert "empty" in str(e.value)


def test_dataframe_to_rows_replaces_nan():
    df = pd.DataFrame([[1.5, float("nan")], [None, "x"]])
    assert dataframe_to_rows(df) == [[1.5, None], [None, "x"]]


def test_date_formatted_month_cell_drives_title(excel_factory):
    path = excel_factory(
        "dated.xlsx",
        [["SKU", "Name", "Price", "Month"], ["1001", "Widget", 10, datetime(2024, 5, 1)]],
    )
    rows = read_sheet_rows(path)
    assert derive_title(map_rows(rows).rows) == "Consumer Offer Plan May (COP-5)"

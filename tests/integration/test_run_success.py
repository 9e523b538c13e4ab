from __future__ import annotations

import json
import re
from pathlib import Path

from promo_catalog.cli import main as cli_main
from promo_catalog.excel.reader import read_sheet_rows
from promo_catalog.excel.schema_mapper import map_rows
from promo_catalog.services.assembler import build_catalog, build_document

"""End-to-end: spreadsheet -> catalog document without network access."""


def test_pipeline_from_workbook(sample_excel: Path):
    state = build_catalog(map_rows(read_sheet_rows(sample_excel)))
    document = build_document(state)

    assert document.title == "Consumer Offer Plan May (COP-5)"
    assert document.header_logo == "https://a.co/logo.png"
    assert document.product_count == 2
    first, second = document.pages[0].products
    assert first.image_url == "https://lh3.googleusercontent.com/d/1AbCdEfGhIjKlMnOpQrStUvWxYz012345"
    assert first.final_price == 80.0
    assert second.discount_label == "1+1 FREE"
    assert second.image_url == "https://cdn.shop.example/hand-cream.png"


def test_cli_writes_document_tree(temp_workdir: Path, write_config, sample_excel, capsys):
    code = cli_main([str(sample_excel), "--output", "out/catalog.json"])
    out = capsys.readouterr().out

    assert code == 0
    data = json.loads((temp_workdir / "out" / "catalog.json").read_text(encoding="utf-8"))
    assert data["title"] == "Consumer Offer Plan May (COP-5)"
    assert data["logo"] == "https://a.co/logo.png"
    assert [p["sku"] for p in data["pages"][0]["products"]] == ["1001", "1002"]
    assert "SUMMARY products=2 pages=1 images_ok=0 images_failed=0" in out


def test_cli_default_output_name_from_title(temp_workdir: Path, sample_excel, capsys):
    code = cli_main([str(sample_excel)])
    assert code == 0
    assert (temp_workdir / "Promo Magazine COP-5.json").exists()


def test_cli_manual_month_and_cover(temp_workdir: Path, sample_excel, capsys):
    code = cli_main([
        str(sample_excel), "--month", "july", "--output", "out/c.json",
        "--cover", "https://drive.google.com/open?id=1AbCdEfGhIjKlMnOpQrStUvWxYz012345",
    ])
    assert code == 0
    data = json.loads((temp_workdir / "out" / "c.json").read_text(encoding="utf-8"))
    assert data["title"] == "Consumer Offer Plan July (COP-7)"
    assert data["cover"] == "https://lh3.googleusercontent.com/d/1AbCdEfGhIjKlMnOpQrStUvWxYz012345"


def test_cli_page_size_from_config(temp_workdir: Path, write_config, excel_factory, capsys):
    rows = [["SKU", "Name", "Price"]] + [[f"S{i}", f"Item {i}", 10 + i] for i in range(5)]
    path = excel_factory("five.xlsx", rows)
    write_config.write_text(write_config.read_text(encoding="utf-8").replace("page_size: 6", "page_size: 2"),
                            encoding="utf-8")

    code = cli_main([str(path), "--output", "out/five.json"])

    assert code == 0
    data = json.loads((temp_workdir / "out" / "five.json").read_text(encoding="utf-8"))
    assert [len(p["products"]) for p in data["pages"]] == [2, 2, 1]
    assert "pages=3" in capsys.readouterr().out


def test_cli_share_link_round_trip(temp_workdir: Path, write_config, sample_excel, capsys):
    code = cli_main([str(sample_excel), "--share", "--output", "out/a.json"])
    out = capsys.readouterr().out
    assert code == 0
    m = re.search(r"^INFO share link: (\S+)$", out, re.MULTILINE)
    assert m is not None
    link = m.group(1)
    assert link.startswith("https://catalog.example/view?data=")

    code = cli_main(["--from-share", link, "--output", "out/b.json"])
    assert code == 0
    a = json.loads((temp_workdir / "out" / "a.json").read_text(encoding="utf-8"))
    b = json.loads((temp_workdir / "out" / "b.json").read_text(encoding="utf-8"))
    assert a == b


def test_dotenv_overrides_process_environment(temp_workdir: Path, write_config, sample_excel, capsys, monkeypatch):
    monkeypatch.setenv("PROMO_CATALOG_SHARE_BASE_URL", "https://process.example/c")
    (temp_workdir / ".env").write_text("PROMO_CATALOG_SHARE_BASE_URL=https://dotenv.example/c\n", encoding="utf-8")

    code = cli_main([str(sample_excel), "--share", "--output", "out/a.json"])

    assert code == 0
    assert "INFO share link: https://dotenv.example/c?data=" in capsys.readouterr().out


def test_cli_inspect_data(temp_workdir: Path, sample_excel, capsys):
    code = cli_main([str(sample_excel), "--inspect-data"])
    out = capsys.readouterr().out

    assert code == 0
    assert "HEADER ROW: 3 cols=['SKU', 'Product Name', 'Price', 'Mechanics', 'Image', 'Month']" in out
    assert "directive logo='https://a.co/logo.png'" in out
    assert not list(temp_workdir.glob("*.json"))

# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from promo_catalog.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # 開発者の .env / 環境変数がテストに漏れないように
    monkeypatch.delenv("PROMO_CATALOG_SHORTENER_URL", raising=False)
    monkeypatch.delenv("PROMO_CATALOG_SHARE_BASE_URL", raising=False)
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """vat_rate: 1.15
page_size: 6
default_title: Consumer Offer Plan
share:
  base_url: https://catalog.example/view
  size_limit: 8000
images:
  timeout_sec: 5
  probe: false
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "catalog.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_rows() -> list[list[object]]:
    return [
        ["Consumer Offer Plan", None, None, None, None, None],
        [None, None, None, None, None, None],
        ["SKU", "Product Name", "Price", "Mechanics", "Image", "Month"],
        ["Logo", None, None, None, "https://a.co/logo.png, https://b.co/y", None],
        ["1001", "Vitamin C 1000mg", "100", "20% OFF", "https://drive.google.com/file/d/1AbCdEfGhIjKlMnOpQrStUvWxYz012345/view", "May"],
        ["1002", "Hand Cream", "SAR 50", "Buy 1 Get 1", "https://cdn.shop.example/hand-cream.png", None],
        [None, None, None, None, None, None],
        ["1003", None, "30", "10% OFF", None, None],
    ]


def write_excel(path: Path, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def sample_excel(temp_workdir: Path, sample_rows) -> Path:
    return write_excel(temp_workdir / "data" / "offers.xlsx", sample_rows)


@pytest.fixture()
def excel_factory(temp_workdir: Path):
    def _make(name: str, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
        return write_excel(temp_workdir / "data" / name, rows, sheet)
    return _make

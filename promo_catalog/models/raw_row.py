from __future__ import annotations

from dataclasses import dataclass

"""RawRow / DirectiveValue models.

RawRow is one spreadsheet record after header mapping. It is created once per
data row by the schema mapper and never mutated afterwards; pricing and link
normalisation produce a separate ProcessedProduct.
"""

__all__ = [
    "RawRow",
    "DirectiveValue",
]


@dataclass(frozen=True)
class RawRow:
    """Logical representation of a single product row after column mapping."""
    sku: str  # trimmed, non-empty
    name: str  # trimmed, non-empty
    price: float  # >= 0, 非数値文字を除去して解析 (失敗時 0)
    mechanics: str = ""
    name_ar: str | None = None
    final_price: float | None = None  # 明示的な販売価格 (空/解析不可なら None)
    mechanics_ar: str | None = None
    image_ref: str | None = None  # 正規化前の生文字列
    logo_ref: str | None = None
    month: str | int | float | None = None
    product_page_url: str | None = None
    row_number: int = 0  # 1-based spreadsheet row (diagnostics only)


@dataclass(frozen=True)
class DirectiveValue:
    """Catalog metadata carried by a directive row (e.g. SKU == "logo")."""
    kind: str
    value: str
    row_number: int = 0

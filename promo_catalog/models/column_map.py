from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""CanonicalColumnMap model.

Maps each logical field to the zero-based column index found in the header
row, or None when the spreadsheet has no such column. Built once per upload.
"""

__all__ = [
    "CanonicalField",
    "CanonicalColumnMap",
    "REQUIRED_FIELDS",
]


class CanonicalField(str, Enum):
    SKU = "SKU"
    NAME = "Name"
    NAME_AR = "NameAr"
    PRICE = "Price"
    FINAL_PRICE = "FinalPrice"
    MECHANICS = "Mechanics"
    MECHANICS_AR = "MechanicsAr"
    IMAGE = "Image"
    LOGO = "Logo"
    MONTH = "Month"
    PRODUCT_PAGE = "ProductPage"


# Upload is rejected entirely when any of these is absent
REQUIRED_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField.SKU,
    CanonicalField.NAME,
    CanonicalField.PRICE,
)


@dataclass(frozen=True)
class CanonicalColumnMap:
    header_row_index: int
    headers: list[str]
    indices: dict[CanonicalField, int | None] = field(default_factory=dict)

    def index_of(self, canonical: CanonicalField) -> int | None:
        return self.indices.get(canonical)

    def has(self, canonical: CanonicalField) -> bool:
        return self.indices.get(canonical) is not None

    def missing_required(self) -> list[str]:
        """Names of required fields that could not be located, in fixed order."""
        return [f.value for f in REQUIRED_FIELDS if not self.has(f)]

    def describe(self) -> dict[str, str | None]:
        """Field -> header text view (used by --inspect-data)."""
        out: dict[str, str | None] = {}
        for f in CanonicalField:
            idx = self.indices.get(f)
            out[f.value] = self.headers[idx] if idx is not None else None
        return out

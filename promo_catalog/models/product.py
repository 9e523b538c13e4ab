from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from promo_catalog.services.promotion import PriceHighlights, price_highlights

"""ProcessedProduct domain model and ProductStatus enum.

ProcessedProduct is the catalog-ready entity produced per RawRow by the
assembler, or restored from a shared-state payload. Its ``final_price`` is
always a display price, never an error sentinel.

Invariant: ``final_price > 0`` whenever ``original_price > 0``. A row whose
price is 0 (missing or unparsable) keeps ``final_price == 0`` unless its
mechanics name a fixed price ("now 25"); the card then shows 0 rather than
inventing a price.

Card highlights (savings, discount percent, badge) are derived on demand
through ``highlights`` and are not stored.
"""

__all__ = [
    "ProductStatus",
    "ProcessedProduct",
    "new_product_id",
]


class ProductStatus(Enum):
    """Lifecycle of a product card: pending → loading → (completed | error)."""
    PENDING = "pending"
    LOADING = "loading"
    COMPLETED = "completed"
    ERROR = "error"


def new_product_id() -> str:
    """Opaque unique token; a fresh one is generated for every product instance."""
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class ProcessedProduct:
    sku: str
    name: str
    original_price: float
    final_price: float
    discount_label: str  # upper-cased, never empty
    image_url: str = ""
    name_ar: str | None = None
    logo_url: str | None = None
    product_page_url: str | None = None
    discount_label_ar: str | None = None
    original_mechanics: str = ""
    status: ProductStatus = ProductStatus.PENDING
    error: str | None = None
    id: str = field(default_factory=new_product_id)

    @property
    def highlights(self) -> PriceHighlights:
        return price_highlights(self.original_price, self.final_price, self.discount_label)

    def to_dict(self) -> dict[str, Any]:
        """Full (non-minified) JSON form used in shared-state payloads."""
        data: dict[str, Any] = {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "nameAr": self.name_ar,
            "imageUrl": self.image_url,
            "logoUrl": self.logo_url,
            "productPageUrl": self.product_page_url,
            "originalPrice": self.original_price,
            "finalPrice": self.final_price,
            "discountLabel": self.discount_label,
            "discountLabelAr": self.discount_label_ar,
            "originalMechanics": self.original_mechanics,
            "status": self.status.value,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ProcessedProduct:
        original = float(data.get("originalPrice") or 0)
        final = float(data.get("finalPrice") or 0)
        return ProcessedProduct(
            id=str(data.get("id") or new_product_id()),
            sku=str(data.get("sku", "")),
            name=str(data.get("name", "")),
            name_ar=data.get("nameAr") or None,
            image_url=str(data.get("imageUrl") or ""),
            logo_url=data.get("logoUrl") or None,
            product_page_url=data.get("productPageUrl") or None,
            original_price=original,
            # 共有データ経由でも 0 以下の価格は保持しない
            final_price=final if final > 0 else original,
            discount_label=str(data.get("discountLabel") or "").upper(),
            discount_label_ar=data.get("discountLabelAr") or None,
            original_mechanics=str(data.get("originalMechanics") or ""),
            status=ProductStatus(data.get("status", ProductStatus.COMPLETED.value)),
            error=data.get("error"),
        )

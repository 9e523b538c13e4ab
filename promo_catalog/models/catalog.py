from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .image_state import ImageRole, ResolvedImage
from .product import ProcessedProduct

"""Catalog application state and finished document tree.

CatalogState is owned by the orchestration layer and passed explicitly to the
renderer / capture collaborator; nothing in the package keeps it globally.

Image resolution outcomes are kept per rendered slot in ``images``:
``header_logo``, ``cover`` and ``<product id>:<role>`` for product images and
logos. A slot without an entry has not been resolved; the renderer then uses
the reference as is.
"""

__all__ = [
    "DEFAULT_TITLE",
    "DEFAULT_LOGO",
    "HEADER_LOGO_SLOT",
    "COVER_SLOT",
    "product_slot",
    "CatalogState",
    "CatalogPage",
    "CatalogDocument",
]

DEFAULT_TITLE = "Consumer Offer Plan"
DEFAULT_LOGO = "https://alhabibpharmacy.com/media/logo/stores/3/En-Logo.png"

HEADER_LOGO_SLOT = "header_logo"
COVER_SLOT = "cover"


def product_slot(product_id: str, role: ImageRole) -> str:
    return f"{product_id}:{role.value}"


def _image_dict(image: ResolvedImage | None) -> dict[str, object] | None:
    return image.to_dict() if image is not None else None


@dataclass
class CatalogState:
    title: str = DEFAULT_TITLE
    header_logo: str = DEFAULT_LOGO
    cover: str | None = None
    products: list[ProcessedProduct] = field(default_factory=list)
    page_size: int = 6
    default_title: str = DEFAULT_TITLE
    default_logo: str = DEFAULT_LOGO
    images: dict[str, ResolvedImage] = field(default_factory=dict)

    def add_products(self, products: list[ProcessedProduct]) -> None:
        # 新しいアップロード分は既存商品の後ろに追加
        self.products = [*self.products, *products]

    def clear(self) -> None:
        self.products = []
        self.title = self.default_title
        self.header_logo = self.default_logo
        self.cover = None
        self.images = {}


@dataclass(frozen=True)
class CatalogPage:
    number: int  # 1-based
    products: list[ProcessedProduct]


@dataclass(frozen=True)
class CatalogDocument:
    """Finished document tree handed to the rendering / capture collaborator."""
    title: str
    header_logo: str
    cover: str | None
    pages: list[CatalogPage]
    images: dict[str, ResolvedImage] = field(default_factory=dict)

    @property
    def product_count(self) -> int:
        return sum(len(p.products) for p in self.pages)

    def image_for(self, slot: str) -> ResolvedImage | None:
        return self.images.get(slot)

    def _product_dict(self, product: ProcessedProduct) -> dict[str, Any]:
        data = product.to_dict()
        data.update(product.highlights.to_dict())
        data["resolvedImage"] = _image_dict(self.image_for(product_slot(product.id, ImageRole.PRODUCT)))
        data["resolvedLogo"] = _image_dict(self.image_for(product_slot(product.id, ImageRole.LOGO)))
        return data

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "logo": self.header_logo,
            "logoImage": _image_dict(self.image_for(HEADER_LOGO_SLOT)),
            "cover": self.cover,
            "coverImage": _image_dict(self.image_for(COVER_SLOT)),
            "pages": [
                {"number": page.number, "products": [self._product_dict(p) for p in page.products]}
                for page in self.pages
            ],
        }

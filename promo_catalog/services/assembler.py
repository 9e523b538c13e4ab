from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Protocol

from promo_catalog.errors import CaptureError
from promo_catalog.excel.schema_mapper import MappingResult
from promo_catalog.models.catalog import DEFAULT_TITLE, CatalogDocument, CatalogPage, CatalogState
from promo_catalog.models.product import ProcessedProduct, ProductStatus
from promo_catalog.models.raw_row import RawRow
from promo_catalog.services.links import convert_link
from promo_catalog.services.promotion import DEFAULT_VAT_RATE, resolve_promotion

"""Catalog assembly: RawRows -> ProcessedProducts -> paginated document.

Also derives the campaign title from a month token and hands the finished
document tree to an external capture collaborator (PDF rasterisation is not
done here).
"""

__all__ = [
    "ITEMS_PER_PAGE",
    "MONTHS",
    "DocumentCapture",
    "generate_campaign_title",
    "derive_title",
    "process_row",
    "paginate",
    "build_catalog",
    "build_document",
    "pdf_filename",
    "export_document",
]

logger = logging.getLogger(__name__)

ITEMS_PER_PAGE = 6

MONTHS = (
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
)

# Spreadsheet serial dates count days from 1899-12-30
_SERIAL_EPOCH = datetime(1899, 12, 30)
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_COP_NUMBER = re.compile(r"\(COP-(\d+)\)")


class DocumentCapture(Protocol):
    """External collaborator turning a laid-out document into a binary file."""

    def capture(self, document: CatalogDocument) -> bytes: ...


def _leading_number(text: str) -> float | None:
    m = _LEADING_FLOAT.match(text)
    return float(m.group()) if m else None


def _month_index(text: str) -> int | None:
    number = _leading_number(text)
    if number is not None and 1 <= number <= 12:
        return int(number) - 1
    if number is not None and number > 12:
        try:
            return (_SERIAL_EPOCH + timedelta(days=number)).month - 1
        except OverflowError:
            return None
    for i, month in enumerate(MONTHS):
        if month in text or month[:3] in text or month.startswith(text):
            return i
    return None


def generate_campaign_title(value: str | int | float | date | None, default: str = DEFAULT_TITLE) -> str:
    """Map a month token to the campaign title.

    >>> generate_campaign_title(5)
    'Consumer Offer Plan May (COP-5)'
    >>> generate_campaign_title("july promo")
    'Consumer Offer Plan July (COP-7)'
    """
    if value is None:
        return default
    if isinstance(value, date):
        value = value.month
    text = str(value).strip().upper()
    if not text:
        return default

    idx = _month_index(text)
    if idx is not None:
        display = MONTHS[idx].capitalize()
        return f"{default} {display} (COP-{idx + 1})"
    if len(text) > 2:
        return f"{default} {text.capitalize()}"
    return default


def derive_title(rows: Sequence[RawRow], manual_month: str | None = None, default: str = DEFAULT_TITLE) -> str:
    """Manual month input wins over any month value found in the rows."""
    if manual_month and manual_month.strip():
        return generate_campaign_title(manual_month, default)
    for row in rows:
        if row.month is not None and str(row.month).strip():
            return generate_campaign_title(row.month, default)
    return default


def process_row(row: RawRow, vat_rate: float = DEFAULT_VAT_RATE) -> ProcessedProduct:
    promo = resolve_promotion(
        row.price,
        row.mechanics,
        row.mechanics_ar,
        row.final_price,
        vat_rate=vat_rate,
    )
    return ProcessedProduct(
        sku=row.sku,
        name=row.name,
        name_ar=row.name_ar,
        image_url=convert_link(row.image_ref or ""),
        logo_url=convert_link(row.logo_ref or "") or None,
        product_page_url=row.product_page_url,
        original_price=row.price,
        final_price=promo.final_price,
        discount_label=promo.discount_label,
        discount_label_ar=promo.discount_label_ar or None,
        original_mechanics=row.mechanics,
        status=ProductStatus.COMPLETED,
    )


def paginate(products: Sequence[ProcessedProduct], page_size: int = ITEMS_PER_PAGE) -> list[list[ProcessedProduct]]:
    """Sequential fixed-size chunks in input order (last page may be shorter)."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    return [list(products[i:i + page_size]) for i in range(0, len(products), page_size)]


def build_catalog(
    result: MappingResult,
    manual_month: str | None = None,
    state: CatalogState | None = None,
    *,
    vat_rate: float = DEFAULT_VAT_RATE,
) -> CatalogState:
    """Run pricing + link normalisation for a mapped upload and merge it into ``state``.

    A fresh state is created when none is given. New products are appended
    after the existing ones; title and (when a logo directive exists) header
    logo are replaced.
    """
    if state is None:
        state = CatalogState()
    state.title = derive_title(result.rows, manual_month, state.default_title)

    logo = result.logo_directive
    if logo:
        converted = convert_link(logo)
        if converted:
            state.header_logo = converted

    products = [process_row(row, vat_rate) for row in result.rows]
    state.add_products(products)
    logger.info(f"catalog built products={len(state.products)} title={state.title!r}")
    return state


def build_document(state: CatalogState) -> CatalogDocument:
    pages = [
        CatalogPage(number=i, products=chunk)
        for i, chunk in enumerate(paginate(state.products, state.page_size), start=1)
    ]
    return CatalogDocument(
        title=state.title,
        header_logo=state.header_logo,
        cover=state.cover,
        pages=pages,
        images=dict(state.images),
    )


def pdf_filename(title: str) -> str:
    m = _COP_NUMBER.search(title)
    if m:
        return f"Promo Magazine COP-{m.group(1)}.pdf"
    return "Promo Magazine.pdf"


def export_document(state: CatalogState, capture: DocumentCapture, out_dir: Path) -> Path:
    """Hand the finished document to ``capture`` and write the returned bytes.

    Raises:
        CaptureError: the collaborator failed or returned nothing
    """
    document = build_document(state)
    try:
        data = capture.capture(document)
    except Exception as e:
        raise CaptureError(f"document capture failed: {e}") from e
    if not data:
        raise CaptureError("document capture returned no data")
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / pdf_filename(state.title)
    target.write_bytes(data)
    logger.info(f"document written: {target}")
    return target

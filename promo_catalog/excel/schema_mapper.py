from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from promo_catalog.errors import SchemaError
from promo_catalog.models.column_map import CanonicalColumnMap, CanonicalField
from promo_catalog.models.raw_row import DirectiveValue, RawRow

"""Schema mapper: loosely structured sheet -> strict RawRow list.

Steps:
1. Header detection: first of the leading rows mentioning sku / item code /
   article; row 0 otherwise (best effort, not an error)
2. Column resolution: per field synonym list + exclusion list, leftmost match
3. Row extraction: directive rows (SKU == "logo") are split off, rows without
   SKU or Name are skipped silently
"""

__all__ = [
    "HEADER_MARKERS",
    "COLUMN_RULES",
    "MappingResult",
    "cell_text",
    "parse_price",
    "detect_header_row",
    "resolve_columns",
    "map_rows",
]

logger = logging.getLogger(__name__)

HEADER_MARKERS = ("sku", "item code", "article")
DEFAULT_HEADER_SCAN_ROWS = 20
LOGO_DIRECTIVE = "logo"

# field -> (synonyms, exclusions). 順序は意味を持つ (左端一致が優先)
COLUMN_RULES: dict[CanonicalField, tuple[tuple[str, ...], tuple[str, ...]]] = {
    CanonicalField.SKU: (("sku", "item code", "code", "article no"), ()),
    CanonicalField.MECHANICS: (
        ("mechanics", "promo", "offer", "promotion", "details"),
        ("arabic", "ar", "name"),
    ),
    CanonicalField.MECHANICS_AR: (
        ("ar mechanics", "mechanics ar", "arabic mechanics", "promo ar", "arabic promo", "offer ar"),
        ("name",),
    ),
    CanonicalField.IMAGE: (
        ("image", "images", "img", "picture", "photo", "url", "link", "web", "drive"),
        ("logo", "brand", "icon", "page"),
    ),
    CanonicalField.LOGO: (("logo", "brand", "brand logo", "icon"), ()),
    CanonicalField.NAME: (
        ("name", "product name", "description", "title", "item name", "english name", "name en"),
        (),
    ),
    CanonicalField.NAME_AR: (
        ("arabic name", "name arabic", "name ar", "ar name", "arabic"),
        ("mechanics", "promo", "offer", "details"),
    ),
    CanonicalField.PRICE: (
        ("price", "original price", "regular price", "rrp", "old price"),
        ("final", "sale", "new price", "discounted"),
    ),
    CanonicalField.FINAL_PRICE: (("final price", "sale price", "new price", "discounted price"), ()),
    CanonicalField.MONTH: (("month", "campaign month", "period", "date", "time", "campaign"), ()),
    CanonicalField.PRODUCT_PAGE: (("product page", "page url", "page link", "product link"), ()),
}

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_DIRECTIVE_SPLIT = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class MappingResult:
    column_map: CanonicalColumnMap
    rows: list[RawRow]
    directives: list[DirectiveValue]
    skipped_rows: int = 0

    @property
    def logo_directive(self) -> str | None:
        """Last logo directive wins, the same way a later row overrides an earlier one."""
        logos = [d.value for d in self.directives if d.kind == LOGO_DIRECTIVE]
        return logos[-1] if logos else None


def cell_text(value: Any) -> str:
    """Stringify a cell; None/NaN -> "", integral floats -> integer text."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def _optional_text(value: Any) -> str | None:
    text = cell_text(value).strip()
    return text or None


def parse_price(value: Any) -> float | None:
    """Strip everything but digits and '.', then read the leading number.

    Returns None when nothing numeric is left; callers decide the fallback.
    """
    cleaned = _NON_NUMERIC.sub("", cell_text(value))
    m = _LEADING_NUMBER.match(cleaned)
    if not m:
        return None
    return float(m.group())


def _month_value(value: Any) -> str | int | float | None:
    if value is None or isinstance(value, bool):
        return None
    # 日付セル (datetime / pd.Timestamp) は月番号に落とす
    if isinstance(value, date):
        return value.month
    if isinstance(value, (int, float)):
        if isinstance(value, float):
            if math.isnan(value):
                return None
            if value.is_integer():
                return int(value)
        return value
    return _optional_text(value)


def detect_header_row(rows: Sequence[Sequence[Any]], scan_rows: int = DEFAULT_HEADER_SCAN_ROWS) -> int:
    for i, row in enumerate(rows[:scan_rows]):
        joined = "|".join(cell_text(c) for c in row).lower()
        if any(marker in joined for marker in HEADER_MARKERS):
            return i
    return 0


def _find_column(headers: list[str], synonyms: tuple[str, ...], exclusions: tuple[str, ...]) -> int | None:
    for idx, header in enumerate(headers):
        lower = header.lower()
        if not any(lower == s or s in lower for s in synonyms):
            continue
        if any(e in lower for e in exclusions):
            continue
        return idx
    return None


def resolve_columns(rows: Sequence[Sequence[Any]], scan_rows: int = DEFAULT_HEADER_SCAN_ROWS) -> CanonicalColumnMap:
    header_idx = detect_header_row(rows, scan_rows)
    headers = [cell_text(h).strip() for h in rows[header_idx]] if rows else []
    indices = {f: _find_column(headers, syn, exc) for f, (syn, exc) in COLUMN_RULES.items()}
    return CanonicalColumnMap(header_row_index=header_idx, headers=headers, indices=indices)


def _cell(row: Sequence[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def map_rows(rows: Sequence[Sequence[Any]], scan_rows: int = DEFAULT_HEADER_SCAN_ROWS) -> MappingResult:
    """Map raw sheet rows to RawRows plus directive values.

    Raises:
        SchemaError: SKU/Name/Price column missing, or no valid product rows
    """
    if not rows:
        raise SchemaError("file appears empty or unreadable")

    cmap = resolve_columns(rows, scan_rows)
    missing = cmap.missing_required()
    if missing:
        raise SchemaError(
            f"could not find required columns: {', '.join(missing)}. "
            "Please ensure the sheet has headers like 'SKU', 'Name' and 'Price'"
        )
    logger.debug(f"header row={cmap.header_row_index} columns={cmap.describe()}")

    idx = cmap.index_of
    parsed: list[RawRow] = []
    directives: list[DirectiveValue] = []
    skipped = 0

    for offset, row in enumerate(rows[cmap.header_row_index + 1:], start=cmap.header_row_index + 2):
        sku = cell_text(_cell(row, idx(CanonicalField.SKU))).strip()

        if sku.casefold() == LOGO_DIRECTIVE:
            raw_logo = cell_text(_cell(row, idx(CanonicalField.IMAGE))).strip()
            if raw_logo:
                # 複数リンクが入っている場合は先頭のみ採用
                first = _DIRECTIVE_SPLIT.split(raw_logo)[0].strip()
                if first:
                    directives.append(DirectiveValue(kind=LOGO_DIRECTIVE, value=first, row_number=offset))
            continue

        name = cell_text(_cell(row, idx(CanonicalField.NAME))).strip()
        if not sku or not name:
            skipped += 1
            continue

        price = parse_price(_cell(row, idx(CanonicalField.PRICE)))
        final_price = (
            parse_price(_cell(row, idx(CanonicalField.FINAL_PRICE)))
            if cmap.has(CanonicalField.FINAL_PRICE)
            else None
        )
        parsed.append(
            RawRow(
                sku=sku,
                name=name,
                name_ar=_optional_text(_cell(row, idx(CanonicalField.NAME_AR))),
                price=price or 0.0,
                final_price=final_price,
                mechanics=cell_text(_cell(row, idx(CanonicalField.MECHANICS))).strip(),
                mechanics_ar=_optional_text(_cell(row, idx(CanonicalField.MECHANICS_AR))),
                image_ref=_optional_text(_cell(row, idx(CanonicalField.IMAGE))),
                logo_ref=_optional_text(_cell(row, idx(CanonicalField.LOGO))),
                month=_month_value(_cell(row, idx(CanonicalField.MONTH))),
                product_page_url=_optional_text(_cell(row, idx(CanonicalField.PRODUCT_PAGE))),
                row_number=offset,
            )
        )

    if skipped:
        logger.debug(f"skipped {skipped} rows without SKU or Name")
    if not parsed:
        raise SchemaError("no valid product rows found in the file")

    return MappingResult(column_map=cmap, rows=parsed, directives=directives, skipped_rows=skipped)

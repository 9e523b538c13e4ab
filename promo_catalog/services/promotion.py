from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

"""Promotion pricing inference.

Derives a display label (English + Arabic) and a final price from a row's
price and its free-text mechanics. Pure and deterministic: keyword/regex
rules evaluated in a fixed order, first match wins.

Rule order matters because the rules overlap ("50% off 2nd item" also
contains a flat percentage):
    1. second item discount   -> unit price unchanged
    2. flat percentage        -> VAT-aware discount
    3. buy 1 get 1            -> unit price unchanged
    4. buy 2 get 1            -> unit price unchanged
    5. fixed price phrase     -> "now 25", "for 9.99", "at 10"
    6. fallback               -> raw mechanics as label

Card highlights (savings, discount percent, badge) are derived from the
finished price and label by ``price_highlights``.
"""

__all__ = [
    "DEFAULT_VAT_RATE",
    "FALLBACK_LABEL",
    "FALLBACK_LABEL_AR",
    "PromotionResult",
    "resolve_promotion",
    "PromoBadge",
    "PriceHighlights",
    "promo_badge",
    "price_highlights",
]

# Prices in the sheet include VAT; percentage discounts apply to the pre-VAT base
DEFAULT_VAT_RATE = 1.15

FALLBACK_LABEL = "SPECIAL OFFER"
FALLBACK_LABEL_AR = "عرض خاص"

LONG_LABEL_CHARS = 15

_PERCENT = re.compile(r"(\d+)%")
_FLAT_PERCENT = re.compile(r"(\d+)%\s*(off|discount|save)")
_FIXED_PRICE = re.compile(r"(?:now|for|at)\s*(\d+(?:\.\d+)?)")

# 表示上の節約額がこれ以下なら「節約」として扱わない
SAVINGS_THRESHOLD = 0.5
PREMIUM_PRICE = 150

_BUNDLE_KEYWORDS = ("2+1", "3+1", "buy 2", "buy 3", "bundle", "set", "pack", "pcs")
_BOGO_KEYWORDS = ("1+1", "buy 1")


@dataclass(frozen=True)
class PromotionResult:
    final_price: float
    discount_label: str
    discount_label_ar: str


class PromoBadge(Enum):
    """Card badge; value is the rendered text."""
    BUNDLE = "BUNDLE OFFER"
    BOGO = "BUY 1 GET 1 FREE"
    PREMIUM = "PREMIUM PICK"
    HOT = "HOT OFFER"

    @property
    def icon(self) -> str:
        return _BADGE_ICONS[self]


_BADGE_ICONS = {
    PromoBadge.BUNDLE: "gift",
    PromoBadge.BOGO: "cart",
    PromoBadge.PREMIUM: "star",
    PromoBadge.HOT: "flame",
}


@dataclass(frozen=True)
class PriceHighlights:
    savings: float
    has_savings: bool
    discount_percent: float
    badge: PromoBadge

    def to_dict(self) -> dict[str, object]:
        return {
            "savings": self.savings,
            "hasSavings": self.has_savings,
            "discountPercent": self.discount_percent,
            "promoBadge": self.badge.value,
            "promoBadgeIcon": self.badge.icon,
        }


def _vat_aware_discount(original_price: float, percent: int, vat_rate: float) -> float:
    price_before_vat = original_price / vat_rate
    after_discount = price_before_vat * (100 - percent) / 100
    return round(after_discount * vat_rate, 2)


def _compress_label(label: str) -> str:
    if len(label) <= LONG_LABEL_CHARS or "%" in label:
        return label
    lower = label.lower()
    if "buy 1 get 1" in lower:
        return "1+1 FREE"
    if "buy 2 get 1" in lower:
        return "2+1 FREE"
    return label


def _transliterate(label: str) -> str:
    # 機械的な置換のみ (翻訳ではない)
    if "FREE" in label:
        return label.replace("FREE", "مجاناً")
    if "OFF" in label:
        return label.replace("OFF", "خصم")
    return ""


def resolve_promotion(
    original_price: float,
    mechanics: str = "",
    mechanics_ar: str | None = "",
    explicit_final_price: float | None = None,
    *,
    vat_rate: float = DEFAULT_VAT_RATE,
) -> PromotionResult:
    """Compute final price and labels for one product.

    ``explicit_final_price`` (a FinalPrice column value) wins when positive;
    the label then stays the raw mechanics text.
    """
    original_price = original_price or 0.0
    mechanics = (mechanics or "").strip()
    label_ar = (mechanics_ar or "").strip()
    label = mechanics

    final_price: float
    if explicit_final_price is not None and explicit_final_price > 0:
        final_price = explicit_final_price
    else:
        text = mechanics.lower()
        flat = _FLAT_PERCENT.search(text)
        if "2nd" in text or "second" in text:
            m = _PERCENT.search(text)
            percent = m.group(1) if m else "50"
            final_price = original_price
            label = f"{percent}% OFF ON 2ND ITEM"
            label_ar = label_ar or f"خصم {percent}% على القطعة الثانية"
        elif flat:
            percent = int(flat.group(1))
            final_price = _vat_aware_discount(original_price, percent, vat_rate)
            label = f"{percent}% OFF"
            label_ar = label_ar or f"خصم {percent}%"
        elif "1+1" in text or "buy 1 get 1" in text:
            final_price = original_price
            label = "1+1 FREE"
            label_ar = label_ar or "١+١ مجاناً"
        elif "2+1" in text or "buy 2 get 1" in text:
            final_price = original_price
            label = "2+1 FREE"
            label_ar = label_ar or "٢+١ مجاناً"
        else:
            fixed = _FIXED_PRICE.search(text)
            final_price = float(fixed.group(1)) if fixed else original_price

    if final_price <= 0:
        final_price = original_price

    label = _compress_label(label).upper()
    if not label:
        label = FALLBACK_LABEL
        label_ar = label_ar or FALLBACK_LABEL_AR
    if not label_ar:
        label_ar = _transliterate(label)

    return PromotionResult(final_price=final_price, discount_label=label, discount_label_ar=label_ar)


def promo_badge(discount_label: str, final_price: float) -> PromoBadge:
    """Badge for a product card; keyword groups are checked in a fixed order.

    >>> promo_badge("2+1 FREE", 10).value
    'BUNDLE OFFER'
    >>> promo_badge("20% OFF", 199).value
    'PREMIUM PICK'
    """
    label = (discount_label or "").lower()
    if any(k in label for k in _BUNDLE_KEYWORDS):
        return PromoBadge.BUNDLE
    if any(k in label for k in _BOGO_KEYWORDS):
        return PromoBadge.BOGO
    if final_price > PREMIUM_PRICE or "premium" in label:
        return PromoBadge.PREMIUM
    return PromoBadge.HOT


def price_highlights(original_price: float, final_price: float, discount_label: str) -> PriceHighlights:
    savings = original_price - final_price
    percent = savings / original_price * 100 if original_price > 0 else 0.0
    return PriceHighlights(
        savings=round(savings, 2),
        has_savings=savings > SAVINGS_THRESHOLD,
        discount_percent=round(percent, 2),
        badge=promo_badge(discount_label, final_price),
    )

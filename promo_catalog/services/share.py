from __future__ import annotations

import base64
import binascii
import json
import logging
import zlib
from dataclasses import replace
from typing import Any
from urllib.parse import parse_qs, quote, urlencode, urlparse

import httpx

from promo_catalog.errors import LinkShorteningUnavailable, SharedStateError, ShareLinkTooLarge
from promo_catalog.models.catalog import CatalogState
from promo_catalog.models.product import ProcessedProduct, ProductStatus
from promo_catalog.services.promotion import DEFAULT_VAT_RATE, resolve_promotion

"""Shareable catalog state.

Payload: ``{title, logo, cover?, products | minifiedProducts}``. The minified
form stores each product as a fixed-position array (positions are part of the
link format and must never be reordered):

    0 sku, 1 name, 2 nameAr, 3 originalPrice, 4 originalMechanics,
    5 discountLabelAr, 6 imageUrl, 7 logoUrl, 8 productPageUrl

Encoding: JSON -> zlib -> URL-safe base64, carried in the ``data`` query
parameter.
"""

__all__ = [
    "MINIFIED_FIELDS",
    "minify_product",
    "restore_product",
    "state_payload",
    "state_from_payload",
    "encode_state",
    "decode_state",
    "LinkShortener",
    "build_share_link",
    "load_shared_state",
]

logger = logging.getLogger(__name__)

MINIFIED_FIELDS = (
    "sku",
    "name",
    "nameAr",
    "originalPrice",
    "originalMechanics",
    "discountLabelAr",
    "imageUrl",
    "logoUrl",
    "productPageUrl",
)
DATA_PARAM = "data"


def minify_product(product: ProcessedProduct) -> list[Any]:
    return [
        product.sku,
        product.name,
        product.name_ar or "",
        product.original_price,
        product.original_mechanics,
        product.discount_label_ar or "",
        product.image_url,
        product.logo_url or "",
        product.product_page_url or "",
    ]


def restore_product(entry: list[Any], vat_rate: float = DEFAULT_VAT_RATE) -> ProcessedProduct:
    """Rebuild a product from its minified array.

    Only final price and English label are derived again; every carried field
    (the Arabic label included) is kept as stored.
    """
    if not isinstance(entry, list) or len(entry) < len(MINIFIED_FIELDS):
        raise SharedStateError(f"minified product must have {len(MINIFIED_FIELDS)} positions")
    sku, name, name_ar, price, mechanics, label_ar, image_url, logo_url, page_url = entry[: len(MINIFIED_FIELDS)]
    try:
        original_price = float(price or 0)
    except (TypeError, ValueError) as e:
        raise SharedStateError(f"invalid price in minified product: {price!r}") from e
    promo = resolve_promotion(original_price, str(mechanics or ""), str(label_ar or ""), vat_rate=vat_rate)
    return ProcessedProduct(
        sku=str(sku),
        name=str(name),
        name_ar=name_ar or None,
        image_url=str(image_url or ""),
        logo_url=logo_url or None,
        product_page_url=page_url or None,
        original_price=original_price,
        final_price=promo.final_price,
        discount_label=promo.discount_label,
        discount_label_ar=label_ar or None,
        original_mechanics=str(mechanics or ""),
        status=ProductStatus.COMPLETED,
    )


def state_payload(state: CatalogState, minified: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {"title": state.title, "logo": state.header_logo}
    if state.cover:
        payload["cover"] = state.cover
    if minified:
        payload["minifiedProducts"] = [minify_product(p) for p in state.products]
    else:
        payload["products"] = [p.to_dict() for p in state.products]
    return payload


def _label_or_derive(product: ProcessedProduct, vat_rate: float) -> ProcessedProduct:
    if product.discount_label:
        return product
    promo = resolve_promotion(
        product.original_price, product.original_mechanics, product.discount_label_ar, vat_rate=vat_rate
    )
    return replace(product, discount_label=promo.discount_label)


def state_from_payload(payload: dict[str, Any], vat_rate: float = DEFAULT_VAT_RATE) -> CatalogState:
    if not isinstance(payload, dict):
        raise SharedStateError("shared payload must be an object")
    state = CatalogState()
    state.title = payload.get("title") or state.default_title
    state.header_logo = payload.get("logo") or state.default_logo
    state.cover = payload.get("cover") or None

    if isinstance(payload.get("minifiedProducts"), list):
        products = [restore_product(e, vat_rate) for e in payload["minifiedProducts"]]
    elif isinstance(payload.get("products"), list):
        try:
            products = [_label_or_derive(ProcessedProduct.from_dict(d), vat_rate) for d in payload["products"]]
        except (TypeError, ValueError, AttributeError) as e:
            raise SharedStateError(f"invalid product in shared payload: {e}") from e
    else:
        raise SharedStateError("shared payload carries no products")
    state.add_products(products)
    return state


def encode_state(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")


def decode_state(token: str) -> dict[str, Any]:
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = zlib.decompress(base64.urlsafe_b64decode(padded.encode("ascii")))
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
        raise SharedStateError(f"undecodable shared state: {e}") from e


class LinkShortener:
    """Thin client for a URL-shortening endpoint.

    ``template`` contains ``{url}``, e.g. ``https://tinyurl.com/api-create.php?url={url}``;
    the response body is the short link.
    """

    def __init__(self, template: str, client: httpx.Client | None = None, timeout: float = 10.0) -> None:
        self.template = template
        self._client = client
        self._timeout = timeout

    def shorten(self, long_url: str) -> str:
        endpoint = self.template.replace("{url}", quote(long_url, safe=""))
        try:
            if self._client is not None:
                response = self._client.get(endpoint)
            else:
                with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
                    response = client.get(endpoint)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LinkShorteningUnavailable(f"shortener call failed: {e}") from e
        short = response.text.strip()
        if not short.startswith("http"):
            raise LinkShorteningUnavailable(f"unexpected shortener response: {short[:80]!r}")
        return short


def _link(base_url: str, token: str) -> str:
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}{urlencode({DATA_PARAM: token})}"


def build_share_link(
    state: CatalogState,
    base_url: str,
    size_limit: int = 8000,
    shortener: LinkShortener | None = None,
) -> str:
    """Encode ``state`` into a link, minifying when the full form is too long.

    Raises:
        ShareLinkTooLarge: even the minified form exceeds ``size_limit``
    """
    link = _link(base_url, encode_state(state_payload(state)))
    if len(link) > size_limit:
        logger.debug(f"full share link too long ({len(link)}), switching to minified form")
        link = _link(base_url, encode_state(state_payload(state, minified=True)))
    if len(link) > size_limit:
        raise ShareLinkTooLarge(len(link), size_limit)

    if shortener is None:
        return link
    try:
        return shortener.shorten(link)
    except LinkShorteningUnavailable as e:
        # 短縮に失敗しても長いリンクで継続 (ユーザーには通知しない)
        logger.info(f"link shortening unavailable, using long link: {e}")
        return link


def load_shared_state(link_or_token: str, vat_rate: float = DEFAULT_VAT_RATE) -> CatalogState:
    """Accept a full share link (``...?data=``) or the bare token."""
    text = link_or_token.strip()
    token = text
    if "?" in text or text.startswith("http"):
        values = parse_qs(urlparse(text).query).get(DATA_PARAM)
        if not values:
            raise SharedStateError("link has no data parameter")
        token = values[0]
    return state_from_payload(decode_state(token), vat_rate)

from __future__ import annotations

"""Exception hierarchy for the promo catalog builder.

Fatal errors abort an upload and are surfaced to the user as-is. Tolerated
conditions (blank rows, unparsable prices, exhausted image strategies) are
behaviours, not exceptions, and therefore have no class here.
"""

__all__ = [
    "CatalogError",
    "SchemaError",
    "SpreadsheetReadError",
    "ConfigError",
    "CaptureError",
    "ShareError",
    "ShareLinkTooLarge",
    "LinkShorteningUnavailable",
    "SharedStateError",
]


class CatalogError(Exception):
    """Base class for all catalog builder errors."""


class SchemaError(CatalogError):
    """Required columns missing or no valid product rows (no partial catalog)."""


class SpreadsheetReadError(SchemaError):
    """The spreadsheet could not be read at all."""


class ConfigError(CatalogError):
    pass


class CaptureError(CatalogError):
    """The document-capture collaborator failed to produce a file."""


class ShareError(CatalogError):
    pass


class ShareLinkTooLarge(ShareError):
    """Even the minified share link exceeds the configured size ceiling."""

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            f"shareable link is too large ({length} > {limit} chars); "
            "reduce the number of products or export the PDF instead"
        )
        self.length = length
        self.limit = limit


class LinkShorteningUnavailable(ShareError):
    """The external shortening call failed; callers fall back to the long link."""


class SharedStateError(ShareError):
    """A shared-state token could not be decoded."""

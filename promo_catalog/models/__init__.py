"""Domain models for the promo catalog builder.

Rows flow RawRow -> ProcessedProduct -> CatalogState -> CatalogDocument;
image elements carry their own ImageResolutionState.
"""

from .build_result import BuildResult
from .catalog import CatalogDocument, CatalogPage, CatalogState
from .column_map import CanonicalColumnMap, CanonicalField
from .image_failure import ImageFailureRecord
from .image_state import ImageResolutionState, ImageRole, ImageStage, ResolvedImage
from .product import ProcessedProduct, ProductStatus
from .raw_row import DirectiveValue, RawRow

__all__ = [
    # Spreadsheet models
    "RawRow",
    "DirectiveValue",
    "CanonicalColumnMap",
    "CanonicalField",
    # Catalog models
    "ProcessedProduct",
    "ProductStatus",
    "CatalogState",
    "CatalogPage",
    "CatalogDocument",
    "BuildResult",
    # Image resolution
    "ImageResolutionState",
    "ImageRole",
    "ImageStage",
    "ResolvedImage",
    "ImageFailureRecord",
]

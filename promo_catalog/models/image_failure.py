from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ImageFailureRecord model for image-resolution debug reports.

One record is produced when a non-logo image exhausts every fallback
strategy. Serialized as JSON Lines with a fixed key set (no extra keys).
"""

__all__ = [
    "ImageFailureRecord",
]


@dataclass(frozen=True)
class ImageFailureRecord:
    """Structured debug report for a failed image.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        reference: Original (untouched) image reference
        extracted_id: Identifier extracted from the reference, "" when none
        role: Image role (product / cover)
        sku: Owning product SKU, "" when the image is not tied to a product
    """
    timestamp: str
    reference: str
    extracted_id: str
    role: str
    sku: str

    @staticmethod
    def create(reference: str, extracted_id: str, role: str, sku: str = "") -> ImageFailureRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ImageFailureRecord(
            timestamp=ts,
            reference=reference,
            extracted_id=extracted_id,
            role=role,
            sku=sku,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

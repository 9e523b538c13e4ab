from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""ImageResolutionState model for the per-image fallback state machine.

State transitions (strategy order is fixed):
    DIRECT → THUMBNAIL → EXPORT → CDN → FAILED
Each strategy is attempted with cors_mode=True first, then cors_mode=False on
the same candidate URL. Any successful load moves to LOADED.

The state value itself is immutable; transitions live in
``promo_catalog.services.image_resolver``.
"""

__all__ = [
    "ImageStage",
    "ImageRole",
    "ImageResolutionState",
    "ResolvedImage",
]


class ImageStage(Enum):
    DIRECT = "direct"
    THUMBNAIL = "thumbnail"
    EXPORT = "export"
    CDN = "cdn"
    LOADED = "loaded"
    FAILED = "failed"


class ImageRole(Enum):
    """Where the image is rendered; logos degrade silently on failure."""
    PRODUCT = "product"
    LOGO = "logo"
    COVER = "cover"


@dataclass(frozen=True)
class ImageResolutionState:
    original_reference: str  # 入力文字列 (未加工)
    candidate_url: str
    stage: ImageStage = ImageStage.DIRECT
    strategy_index: int = 0  # 単調増加のみ
    cors_mode: bool = True
    terminal: bool = False
    drive_id: str = ""
    generation: int = 0  # reset ごとに +1 (遅延コールバック判定用)
    role: ImageRole = ImageRole.PRODUCT

    @property
    def loaded(self) -> bool:
        return self.stage is ImageStage.LOADED

    @property
    def failed(self) -> bool:
        return self.stage is ImageStage.FAILED

    @property
    def capture_safe(self) -> bool:
        """Loaded in cors mode, i.e. visible to the document-capture step as well."""
        return self.loaded and self.cors_mode

    @property
    def placeholder(self) -> str | None:
        """Placeholder text rendered instead of the image once resolution has failed."""
        if not self.failed:
            return None
        return "LOGO" if self.role is ImageRole.LOGO else "No Image"


@dataclass(frozen=True)
class ResolvedImage:
    """Outcome of one machine as the renderer consumes it.

    ``url`` is the candidate that finally loaded ("" when resolution failed);
    ``placeholder`` is the text shown instead of the image.
    """
    url: str
    placeholder: str | None = None
    capture_safe: bool = False

    @staticmethod
    def from_state(state: ImageResolutionState) -> ResolvedImage:
        return ResolvedImage(
            url=state.candidate_url if state.loaded else "",
            placeholder=state.placeholder,
            capture_safe=state.capture_safe,
        )

    def to_dict(self) -> dict[str, object]:
        return {"url": self.url, "placeholder": self.placeholder, "captureSafe": self.capture_safe}

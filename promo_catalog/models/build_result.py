from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""BuildResult model: aggregated outcome of one CLI run, rendered as the SUMMARY line."""

__all__ = [
    "BuildResult",
]


@dataclass(frozen=True)
class BuildResult:
    products: int  # 出力商品数 (ディレクティブ行・スキップ行は含まない)
    pages: int
    title: str
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    images_ok: int = 0  # 画像プローブ未実行時は 0
    images_failed: int = 0
    share_link: str | None = None

    @property
    def has_image_failures(self) -> bool:
        return self.images_failed > 0

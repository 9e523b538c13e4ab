from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from promo_catalog.models.image_failure import ImageFailureRecord

"""Image failure debug log (JSON Lines, buffered).

The image resolver reports exhausted non-logo images through a debug
callback; the CLI wires that callback to ``ImageFailureLog.report`` and
flushes once at the end of the run into
``logs/image-failures-YYYYMMDD-HHMMSS.log`` (UTC).
"""

__all__ = [
    "ImageFailureRecord",
    "ImageFailureLog",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ImageFailureLog:
    """In-memory buffer of image failure records; flush appends JSON Lines.

    - ファイルパスは初回アクセス時に確定
    - シリアル実行前提 (スレッド安全性は不要)
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ImageFailureRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"image-failures-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ImageFailureRecord]:
        return list(self._records)

    def append(self, record: ImageFailureRecord) -> None:
        self._records.append(record)

    def report(self, info: dict[str, str], *, role: str = "product", sku: str = "") -> None:
        """Debug-callback adapter: accepts the resolver's ``{input, extractedId}`` dict."""
        self.append(
            ImageFailureRecord.create(
                reference=info.get("input", ""),
                extracted_id=info.get("extractedId", ""),
                role=role,
                sku=sku,
            )
        )

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp

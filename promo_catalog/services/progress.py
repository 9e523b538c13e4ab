from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for image probing (tqdm, TTY only).

A single tqdm bar counts resolved images. In non-TTY environments (CI, piped
output) no bar is created so the labeled log lines stay clean.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Counts resolved images and shows ok/failed as the bar postfix."""

    def __init__(self, total: int, *, description: str = "Resolving images") -> None:
        self.total = total
        self.description = description
        self.loaded = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="image",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    @property
    def done(self) -> int:
        return self.loaded + self.failed

    def advance(self, loaded: bool) -> None:
        """Record one image reaching a terminal state."""
        if loaded:
            self.loaded += 1
        else:
            self.failed += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(ok=self.loaded, failed=self.failed)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

from __future__ import annotations

from ..models.build_result import BuildResult

"""Summary line rendering for the catalog build CLI."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: BuildResult) -> str:
    """Render the SUMMARY line.

    Format:
    SUMMARY products={n} pages={p} images_ok={a} images_failed={b} elapsed_sec={s} title="{title}"

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 5, 1, tzinfo=timezone.utc)
    >>> r = BuildResult(products=7, pages=2, title="Consumer Offer Plan May (COP-5)",
    ...                 start_time=t, end_time=t, elapsed_seconds=1.5)
    >>> render_summary_line(r)
    'SUMMARY products=7 pages=2 images_ok=0 images_failed=0 elapsed_sec=1.5 title="Consumer Offer Plan May (COP-5)"'
    """
    return (
        f"SUMMARY products={result.products} "
        f"pages={result.pages} "
        f"images_ok={result.images_ok} "
        f"images_failed={result.images_failed} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)} "
        f'title="{result.title}"'
    )

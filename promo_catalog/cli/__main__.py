from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv

from promo_catalog.config.loader import CatalogConfig, ConfigError, load_config
from promo_catalog.errors import SchemaError, ShareError, ShareLinkTooLarge
from promo_catalog.excel.reader import read_sheet_rows
from promo_catalog.excel.schema_mapper import map_rows, resolve_columns
from promo_catalog.logging.error_log import ImageFailureLog
from promo_catalog.logging.init import log_summary, setup_logging
from promo_catalog.models.build_result import BuildResult
from promo_catalog.models.catalog import CatalogState
from promo_catalog.models.image_state import ImageRole
from promo_catalog.services.assembler import build_catalog, build_document, pdf_filename
from promo_catalog.services.image_resolver import (
    ImageProbe,
    ImageRequest,
    catalog_image_requests,
    probe_client,
    resolve_images,
    record_resolutions,
)
from promo_catalog.services.links import convert_link
from promo_catalog.services.progress import ProgressTracker
from promo_catalog.services.share import LinkShortener, build_share_link, load_shared_state
from promo_catalog.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config/catalog.yml (optional)
- Read the spreadsheet, map columns, build the catalog state
  (or restore it from a share link with --from-share)
- Optionally probe every image through the fallback machine and record
  the loaded URL or placeholder per image on the state
- Write the document tree as JSON, optionally print a share link
- Emit one SUMMARY line
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_IMAGE_FAILURES = 2


def _load_env_file(path: Path) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=True)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Spreadsheet -> paginated promo catalog")
    p.add_argument("source", nargs="?", help="Excel (.xlsx/.xls) or CSV file with product rows")
    p.add_argument("--sheet", help="Sheet name (default: first sheet)")
    p.add_argument("--month", help="Campaign month; overrides the sheet's Month column")
    p.add_argument("--cover", help="Cover image reference")
    p.add_argument("--config", help="Config file (default: config/catalog.yml)")
    p.add_argument("--output", help="Document tree JSON path (default derived from the title)")
    p.add_argument("--from-share", dest="from_share", help="Restore the catalog from a share link or token")
    p.add_argument("--share", action="store_true", help="Print a shareable link for the catalog")
    p.add_argument("--probe-images", dest="probe_images", action="store_true", help="Resolve every image over the network")
    p.add_argument("--inspect-data", dest="inspect_data", action="store_true", help="Print detected header & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(rows: list[list[object]], cfg: CatalogConfig) -> int:
    cmap = resolve_columns(rows, cfg.header_scan_rows)
    print(f"HEADER ROW: {cmap.header_row_index + 1} cols={cmap.headers}")
    print(f"  column_map={cmap.describe()}")
    missing = cmap.missing_required()
    if missing:
        print(f"  missing_required={missing}")
        return EXIT_SUCCESS
    try:
        result = map_rows(rows, cfg.header_scan_rows)
    except SchemaError as e:
        print(f"  mapping_error={e}")
        return EXIT_SUCCESS
    for row in result.rows[:3]:
        print(f"  row {row.row_number}: sku={row.sku!r} name={row.name!r} price={row.price} mechanics={row.mechanics!r}")
    for d in result.directives:
        print(f"  directive {d.kind}={d.value!r} (row {d.row_number})")
    return EXIT_SUCCESS


async def _probe_images(state: CatalogState, cfg: CatalogConfig, failure_log: ImageFailureLog) -> tuple[int, int]:
    requests = catalog_image_requests(state)

    def _on_failure(info: dict[str, str], request: ImageRequest) -> None:
        failure_log.report(info, role=request.role.value, sku=request.sku)

    with ProgressTracker(len(requests)) as progress:
        async with probe_client(cfg.images.timeout_sec) as client:
            states = await resolve_images(requests, ImageProbe(client), _on_failure, progress)
    record_resolutions(state, requests, states)

    loaded = sum(1 for s in states if s.loaded)
    # ロゴの失敗はプレースホルダ表示のみで集計しない
    failed = sum(1 for s in states if s.failed and s.role is not ImageRole.LOGO)
    return loaded, failed


def _new_state(cfg: CatalogConfig) -> CatalogState:
    return CatalogState(
        title=cfg.default_title,
        header_logo=cfg.default_logo,
        page_size=cfg.page_size,
        default_title=cfg.default_title,
        default_logo=cfg.default_logo,
    )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストから [] を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        setup_logging(debug=True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    try:
        cfg = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    start_time = datetime.now(UTC)

    if args.from_share:
        try:
            state = load_shared_state(args.from_share, cfg.vat_rate)
        except ShareError as e:
            logger.error(f"share: {e}")
            return EXIT_FATAL
        state.page_size = cfg.page_size
        logger.info(f"catalog restored from share link products={len(state.products)}")
    elif args.source:
        try:
            rows = read_sheet_rows(Path(args.source), sheet=args.sheet)
        except SchemaError as e:
            logger.error(f"read: {e}")
            return EXIT_FATAL
        if args.inspect_data:
            return _inspect_data(rows, cfg)
        try:
            mapping = map_rows(rows, cfg.header_scan_rows)
        except SchemaError as e:
            logger.error(f"schema: {e}")
            return EXIT_FATAL
        state = build_catalog(mapping, args.month, _new_state(cfg), vat_rate=cfg.vat_rate)
    else:
        logger.error("no input: pass a spreadsheet path or --from-share")
        return EXIT_FATAL

    if args.cover:
        state.cover = convert_link(args.cover) or None

    images_ok = images_failed = 0
    if args.probe_images or cfg.images.probe:
        failure_log = ImageFailureLog()
        images_ok, images_failed = asyncio.run(_probe_images(state, cfg, failure_log))
        log_path = failure_log.flush()
        if log_path is not None:
            logger.warning(f"image failures recorded: {log_path}")

    document = build_document(state)
    output = Path(args.output) if args.output else Path(pdf_filename(state.title)).with_suffix(".json")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(document.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"document tree written: {output}")

    share_link = None
    if args.share:
        shortener = LinkShortener(cfg.share.shortener_url) if cfg.share.shortener_url else None
        try:
            share_link = build_share_link(state, cfg.share.base_url, cfg.share.size_limit, shortener)
        except ShareLinkTooLarge as e:
            logger.error(f"share: {e}")
            return EXIT_FATAL
        logger.info(f"share link: {share_link}")

    end_time = datetime.now(UTC)
    result = BuildResult(
        products=document.product_count,
        pages=len(document.pages),
        title=state.title,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        images_ok=images_ok,
        images_failed=images_failed,
        share_link=share_link,
    )
    # log_summary が "SUMMARY " を付与するので本文のみ渡す
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.has_image_failures:
        return EXIT_IMAGE_FAILURES
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

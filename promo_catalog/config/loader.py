from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from promo_catalog.errors import ConfigError
from promo_catalog.models.catalog import DEFAULT_LOGO, DEFAULT_TITLE
from promo_catalog.services.promotion import DEFAULT_VAT_RATE

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/catalog.yml``); the file is optional
- Validate against the JSON schema shipped next to this module
- Apply defaults, then environment overrides (.env is loaded by the CLI)
"""

__all__ = [
    "ConfigError",
    "CatalogConfig",
    "ShareConfig",
    "ImageConfig",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("catalog_schema.json")
DEFAULT_CONFIG_PATH = Path("config/catalog.yml")

ENV_SHORTENER_URL = "PROMO_CATALOG_SHORTENER_URL"
ENV_SHARE_BASE_URL = "PROMO_CATALOG_SHARE_BASE_URL"


@dataclass(frozen=True)
class ShareConfig:
    base_url: str = "https://promo-catalog.local/"
    size_limit: int = 8000  # 共有リンク長の上限 (文字数)
    shortener_url: str | None = None  # "{url}" を含むテンプレート


@dataclass(frozen=True)
class ImageConfig:
    timeout_sec: float = 15.0
    probe: bool = False


@dataclass(frozen=True)
class CatalogConfig:
    vat_rate: float = DEFAULT_VAT_RATE
    page_size: int = 6
    header_scan_rows: int = 20
    default_title: str = DEFAULT_TITLE
    default_logo: str = DEFAULT_LOGO
    share: ShareConfig = field(default_factory=ShareConfig)
    images: ImageConfig = field(default_factory=ImageConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing/broken, or the data violates the schema
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env_overrides(share: ShareConfig) -> ShareConfig:
    # 環境変数 (.env 含む) が YAML より優先
    shortener = os.getenv(ENV_SHORTENER_URL) or share.shortener_url
    base_url = os.getenv(ENV_SHARE_BASE_URL) or share.base_url
    return ShareConfig(base_url=base_url, size_limit=share.size_limit, shortener_url=shortener)


def load_config(path: Path | None = None) -> CatalogConfig:
    """Load configuration; a missing file yields defaults (plus env overrides)."""
    path = path or DEFAULT_CONFIG_PATH
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config validation failed: top level must be a mapping, got {type(data).__name__}")
    else:
        data = {}

    _validate_config_schema(data)

    share_raw = data.get("share", {})
    images_raw = data.get("images", {})
    defaults = ShareConfig()
    share = ShareConfig(
        base_url=share_raw.get("base_url", defaults.base_url),
        size_limit=share_raw.get("size_limit", defaults.size_limit),
        shortener_url=share_raw.get("shortener_url"),
    )
    images = ImageConfig(
        timeout_sec=float(images_raw.get("timeout_sec", ImageConfig.timeout_sec)),
        probe=bool(images_raw.get("probe", ImageConfig.probe)),
    )
    return CatalogConfig(
        vat_rate=float(data.get("vat_rate", DEFAULT_VAT_RATE)),
        page_size=int(data.get("page_size", 6)),
        header_scan_rows=int(data.get("header_scan_rows", 20)),
        default_title=data.get("default_title", DEFAULT_TITLE),
        default_logo=data.get("default_logo", DEFAULT_LOGO),
        share=_apply_env_overrides(share),
        images=images,
    )

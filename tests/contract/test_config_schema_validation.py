from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import yaml

from promo_catalog.config.loader import SCHEMA_PATH, load_config

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def test_shipped_sample_config_is_valid():
    data = yaml.safe_load((PROJECT_ROOT / "config" / "catalog.yml").read_text(encoding="utf-8"))
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    jsonschema.validate(data, schema)


def test_shipped_sample_config_loads():
    cfg = load_config(PROJECT_ROOT / "config" / "catalog.yml")
    assert cfg.page_size == 6
    assert cfg.share.size_limit == 8000
    assert cfg.images.probe is False

from __future__ import annotations

import json
import re
from pathlib import Path

from promo_catalog.logging.error_log import ImageFailureLog

EXPECTED_KEYS = {"timestamp", "reference", "extracted_id", "role", "sku"}


def test_image_failure_log_key_set(tmp_path: Path):
    log = ImageFailureLog(tmp_path)
    log.report({"input": "https://drive.google.com/file/d/x", "extractedId": ""}, role="cover")
    path = log.flush()

    line = path.read_text(encoding="utf-8").splitlines()[0]
    record = json.loads(line)
    assert set(record) == EXPECTED_KEYS
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z", record["timestamp"])
    assert record["role"] == "cover"
    assert record["sku"] == ""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import httpx

from promo_catalog.cli import main as cli_main
from promo_catalog.services.image_resolver import probe_client

"""Image probing through the CLI with the network replaced by fakes."""


async def _never_loads(url: str, cors_mode: bool) -> bool:
    return False


def test_probe_failures_are_logged_and_reported(temp_workdir: Path, sample_excel, capsys):
    with patch("promo_catalog.cli.__main__.ImageProbe", return_value=_never_loads):
        code = cli_main([str(sample_excel), "--probe-images", "--output", "out/c.json"])
    out = capsys.readouterr().out

    assert code == 2
    assert "images_ok=0 images_failed=2" in out
    assert "WARN image failures recorded:" in out

    logs = list((temp_workdir / "logs").glob("image-failures-*.log"))
    assert len(logs) == 1
    records = [json.loads(line) for line in logs[0].read_text(encoding="utf-8").splitlines()]
    # ヘッダーロゴの失敗は記録されない
    assert sorted(r["sku"] for r in records) == ["1001", "1002"]
    by_sku = {r["sku"]: r for r in records}
    assert by_sku["1001"]["extracted_id"] == "1AbCdEfGhIjKlMnOpQrStUvWxYz012345"
    assert by_sku["1002"]["reference"] == "https://cdn.shop.example/hand-cream.png"

    # 失敗しても文書ツリーは出力される (プレースホルダ表示)
    assert (temp_workdir / "out" / "c.json").exists()


def test_probe_with_mock_transport_all_images_load(temp_workdir: Path, sample_excel, capsys):
    def handler(request: httpx.Request) -> httpx.Response:
        headers = {"content-type": "image/png"}
        if "origin" in request.headers:
            headers["access-control-allow-origin"] = "*"
        return httpx.Response(200, headers=headers, content=b"\x89PNG")

    def _mock_client(timeout: float):
        return probe_client(timeout, transport=httpx.MockTransport(handler))

    with patch("promo_catalog.cli.__main__.probe_client", side_effect=_mock_client):
        code = cli_main([str(sample_excel), "--probe-images", "--output", "out/c.json"])
    out = capsys.readouterr().out

    assert code == 0
    # header logo + 2 product images
    assert "images_ok=3 images_failed=0" in out
    assert not list((temp_workdir / "logs").glob("image-failures-*.log"))


def test_probe_enabled_from_config(temp_workdir: Path, write_config, sample_excel, capsys):
    write_config.write_text(
        write_config.read_text(encoding="utf-8").replace("probe: false", "probe: true"), encoding="utf-8"
    )
    with patch("promo_catalog.cli.__main__.ImageProbe", return_value=_never_loads):
        code = cli_main([str(sample_excel), "--output", "out/c.json"])
    assert code == 2


async def _thumbnails_only(url: str, cors_mode: bool) -> bool:
    return url.startswith("https://drive.google.com/thumbnail")


def test_resolved_images_and_placeholders_reach_the_document(temp_workdir: Path, sample_excel, capsys):
    with patch("promo_catalog.cli.__main__.ImageProbe", return_value=_thumbnails_only):
        code = cli_main([str(sample_excel), "--probe-images", "--output", "doc.json"])
    assert code == 2

    data = json.loads((temp_workdir / "doc.json").read_text(encoding="utf-8"))
    products = {p["sku"]: p for p in data["pages"][0]["products"]}

    vitamin = products["1001"]["resolvedImage"]
    assert vitamin["url"].startswith(
        "https://drive.google.com/thumbnail?id=1AbCdEfGhIjKlMnOpQrStUvWxYz012345&sz=w1000&t="
    )
    assert vitamin["placeholder"] is None
    assert vitamin["captureSafe"] is True

    cream = products["1002"]["resolvedImage"]
    assert cream == {"url": "", "placeholder": "No Image", "captureSafe": False}
    assert products["1002"]["resolvedLogo"] is None

    # ヘッダーロゴは LOGO 表示に落ちる
    assert data["logoImage"] == {"url": "", "placeholder": "LOGO", "captureSafe": False}
    assert data["coverImage"] is None


def test_document_without_image_resolution_has_no_outcomes(temp_workdir: Path, sample_excel):
    assert cli_main([str(sample_excel), "--output", "doc.json"]) == 0
    data = json.loads((temp_workdir / "doc.json").read_text(encoding="utf-8"))
    assert data["logoImage"] is None
    assert all(p["resolvedImage"] is None for p in data["pages"][0]["products"])

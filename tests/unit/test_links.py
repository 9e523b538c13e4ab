from __future__ import annotations

import pytest

from promo_catalog.services.links import CDN_PREFIX, cdn_url, convert_link, extract_drive_id

FILE_ID = "1AbCdEfGhIjKlMnOpQrStUvWxYz012345"


def test_cdn_url():
    assert cdn_url(FILE_ID) == f"https://lh3.googleusercontent.com/d/{FILE_ID}"


@pytest.mark.parametrize(
    "reference",
    [
        f"https://drive.google.com/file/d/{FILE_ID}/view?usp=sharing",
        f"https://drive.google.com/open?id={FILE_ID}",
        FILE_ID,
    ],
)
def test_extract_drive_id(reference):
    assert extract_drive_id(reference) == FILE_ID


@pytest.mark.parametrize("reference", [None, "", "https://a.co/x.png"])
def test_extract_drive_id_without_token(reference):
    assert extract_drive_id(reference) == ""


@pytest.mark.parametrize(
    "raw",
    [
        f"https://drive.google.com/file/d/{FILE_ID}/view?usp=sharing",
        f"https://drive.google.com/open?id={FILE_ID}",
        f"  {FILE_ID}  ",
    ],
)
def test_convert_drive_links_to_cdn(raw):
    assert convert_link(raw) == CDN_PREFIX + FILE_ID


def test_cdn_link_passes_through():
    url = cdn_url(FILE_ID)
    assert convert_link(url) == url


def test_external_image_url_is_untouched():
    url = "https://cdn.shop.example/hand-cream.png"
    assert convert_link(url) == url


@pytest.mark.parametrize("raw", [None, "", 12345, "   "])
def test_empty_or_non_text_input_yields_empty(raw):
    assert convert_link(raw) == ""


def test_token_that_looks_like_a_url_fragment_is_not_treated_as_id():
    raw = "my_google_drive_export_file_name"
    assert convert_link(raw) == raw


def test_google_link_without_id_is_returned_as_is():
    raw = "https://drive.google.com/drive/my-drive"
    assert convert_link(raw) == raw

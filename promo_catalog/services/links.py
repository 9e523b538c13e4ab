"""Shared-drive link normalisation.

Spreadsheet authors paste drive links in many shapes (share links, ``open?id=``
links, bare file ids). They are rewritten to the direct CDN form; any other
external image URL passes through untouched.
"""

from __future__ import annotations

import re

__all__ = [
    "CDN_PREFIX",
    "cdn_url",
    "extract_drive_id",
    "convert_link",
]

CDN_PREFIX = "https://lh3.googleusercontent.com/d/"

_ID_RUN = re.compile(r"([-a-zA-Z0-9_]{25,})")
_BOUNDED_ID_RUN = re.compile(r"([-a-zA-Z0-9_]{25,100})")
_ID_REJECT = ("google", "drive", "http", "www")


def cdn_url(drive_id: str) -> str:
    return f"{CDN_PREFIX}{drive_id}"


def extract_drive_id(reference: str | None) -> str:
    """First run of 25+ URL-safe characters in ``reference``, or ""."""
    if not reference:
        return ""
    m = _ID_RUN.search(reference)
    return m.group(1) if m else ""


def convert_link(raw: object) -> str:
    """Best-effort conversion to a direct-access URL. Never raises."""
    if not raw or not isinstance(raw, str):
        return ""
    url = raw.strip()
    if "lh3.googleusercontent.com/d/" in url:
        return url

    is_url = "http" in url or "www." in url
    is_google = "google" in url or "drive" in url
    if is_url and not is_google:
        return url

    m = _BOUNDED_ID_RUN.search(url)
    if m:
        candidate = m.group(1)
        # URL 全体を ID と誤認しないためのガード
        if not any(token in candidate for token in _ID_REJECT):
            return cdn_url(candidate)
    return url

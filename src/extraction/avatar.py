# src/extraction/avatar.py — v1
"""Avatar image reference heuristics.

Strategies are tried in order; the first one returning a value wins:
  1. class_hint    — avatar-container class hint + inline data-URL background
  2. inline_style  — any inline background-image carrying a data URL
  3. markup_scan   — raw-text scan for large base64 image tokens
Profile pictures are larger than icons, so the raw scan uses a higher
length threshold than the two DOM strategies.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from bs4 import BeautifulSoup, Tag

from flowcapture.extraction.config import ExtractorConfig

AvatarStrategy = Callable[[BeautifulSoup, str, ExtractorConfig], "str | None"]

_BG_URL_RE = re.compile(
    r"background-image\s*:\s*url\(\s*(['\"]?)(.*?)\1\s*\)", re.IGNORECASE | re.DOTALL
)
_DATA_IMAGE_RE = re.compile(r"data:image/[^;\"'\s]+;base64,[A-Za-z0-9+/=]+")


def _background_data_url(node: Tag, min_length: int) -> str | None:
    style = node.get("style") or ""
    if isinstance(style, list):
        style = " ".join(style)
    if "data:image" not in style:
        return None
    match = _BG_URL_RE.search(style)
    if not match:
        return None
    url = match.group(2).replace("&quot;", "").replace("&amp;", "&").strip()
    if url.startswith("data:image") and "base64," in url and len(url) > min_length:
        return url
    return None


def _has_class_hint(node: Tag, hints: list[str]) -> bool:
    classes = node.get("class") or []
    joined = " ".join(classes) if isinstance(classes, list) else str(classes)
    return any(hint in joined for hint in hints)


def from_class_hint(
    soup: BeautifulSoup, markup: str, config: ExtractorConfig
) -> str | None:
    if not config.avatar_class_hints:
        return None
    for node in soup.find_all(attrs={"class": True, "style": True}):
        if not _has_class_hint(node, config.avatar_class_hints):
            continue
        url = _background_data_url(node, config.avatar_min_length)
        if url:
            return url
    return None


def from_inline_style(
    soup: BeautifulSoup, markup: str, config: ExtractorConfig
) -> str | None:
    for node in soup.find_all(style=re.compile("background-image", re.IGNORECASE)):
        url = _background_data_url(node, config.avatar_min_length)
        if url:
            return url
    return None


def from_markup_scan(
    soup: BeautifulSoup, markup: str, config: ExtractorConfig
) -> str | None:
    if "data:image" not in markup:
        return None
    for match in _DATA_IMAGE_RE.finditer(markup):
        token = match.group(0)
        if len(token) > config.avatar_scan_min_length:
            return token
    return None


AVATAR_STRATEGIES: list[tuple[str, AvatarStrategy]] = [
    ("class_hint", from_class_hint),
    ("inline_style", from_inline_style),
    ("markup_scan", from_markup_scan),
]


def find_avatar(
    soup: BeautifulSoup,
    markup: str,
    config: ExtractorConfig,
    strategies: list[tuple[str, AvatarStrategy]] | None = None,
) -> tuple[str | None, str | None]:
    """Return (avatar_ref, strategy_name), or (None, None) if nothing matched."""
    for name, strategy in strategies or AVATAR_STRATEGIES:
        ref = strategy(soup, markup, config)
        if ref:
            return ref, name
    return None, None

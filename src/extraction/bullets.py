# src/extraction/bullets.py — v1
"""Bullet/fact list heuristic: list items first, paragraphs as fallback."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag

from flowcapture.extraction.config import ExtractorConfig

_WS_RE = re.compile(r"\s+")


def clean_text(value: str) -> str:
    """Collapse runs of whitespace and trim."""
    return _WS_RE.sub(" ", value).strip()


def direct_text(node: Tag) -> str:
    """Text of node's own string children, ignoring nested elements."""
    parts = [
        str(s) for s in node.find_all(string=True, recursive=False)
        if not isinstance(s, Comment)
    ]
    return clean_text(" ".join(parts))


def _keyword_re(config: ExtractorConfig) -> re.Pattern[str] | None:
    if not config.bullet_keywords:
        return None
    return re.compile("|".join(re.escape(k) for k in config.bullet_keywords), re.IGNORECASE)


def _accept(text: str, keyword_re: re.Pattern[str] | None, config: ExtractorConfig) -> bool:
    if not (config.bullet_min_length <= len(text) <= config.bullet_max_length):
        return False
    return keyword_re is None or bool(keyword_re.search(text))


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        unique.append(item)
    return unique


def find_bullets(soup: BeautifulSoup, config: ExtractorConfig) -> list[str]:
    """Return qualifying bullet texts, exact-deduplicated in first-seen order."""
    keyword_re = _keyword_re(config)

    bullets: list[str] = []
    for li in soup.find_all("li"):
        text = direct_text(li) or clean_text(li.get_text(" "))
        if text and _accept(text, keyword_re, config):
            bullets.append(text)

    if not bullets:
        for p in soup.find_all("p"):
            text = clean_text(p.get_text(" "))
            if text and _accept(text, keyword_re, config):
                bullets.append(text)

    return _dedupe(bullets)

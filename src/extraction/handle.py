# src/extraction/handle.py — v1
"""Display-handle heuristic.

The driven markup often renders the handle flush against neighbouring UI
copy ("@john_doeHello"). Candidates are ranked shortest-first, since short
text nodes are the least likely to be concatenated, then trailing stoplist
words are trimmed. This is a markup-quality workaround, not a parser.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from flowcapture.extraction.config import ExtractorConfig


def handle_candidates(soup: BeautifulSoup, config: ExtractorConfig) -> list[str]:
    """All element texts starting with the handle marker, shortest first."""
    candidates: list[str] = []
    for node in soup.find_all(config.handle_tags):
        text = node.get_text().strip()
        if text.startswith(config.handle_marker):
            candidates.append(text)
    # sorted() is stable: equal lengths keep document order
    return sorted(candidates, key=len)


def trim_stopwords(handle: str, config: ExtractorConfig) -> str:
    """Strip trailing stoplist words, never reducing the handle to the bare marker."""
    if not config.handle_stoplist:
        return handle
    flags = re.IGNORECASE if config.handle_stoplist_ignore_case else 0
    alternatives = "|".join(re.escape(w) for w in config.handle_stoplist)
    tail_re = re.compile(f"(?:{alternatives})$", flags)

    trimmed = handle
    while True:
        candidate = tail_re.sub("", trimmed, count=1)
        if candidate == trimmed or len(candidate) <= len(config.handle_marker):
            return trimmed
        trimmed = candidate


def clean_handle(raw: str, config: ExtractorConfig) -> str | None:
    """Reduce one raw candidate to a bare handle."""
    match = re.match(config.handle_pattern, raw)
    if match:
        return trim_stopwords(match.group(0), config)

    # Marker present but pattern failed: cut at the first stoplist word.
    if raw.startswith(config.handle_marker) and config.handle_stoplist:
        flags = re.IGNORECASE if config.handle_stoplist_ignore_case else 0
        alternatives = "|".join(re.escape(w) for w in config.handle_stoplist)
        head = re.split(f"(?:{alternatives})", raw, maxsplit=1, flags=flags)[0].strip()
        if len(head) > len(config.handle_marker):
            return head
    return None


def find_display_name(soup: BeautifulSoup, config: ExtractorConfig) -> str | None:
    """First candidate, shortest first, that cleans to a usable handle."""
    for candidate in handle_candidates(soup, config):
        handle = clean_handle(candidate, config)
        if handle:
            return handle
    return None

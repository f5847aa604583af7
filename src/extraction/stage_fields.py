# src/extraction/stage_fields.py — v1
"""Stage-specific text fields and full-report feature cards.

Each rule yields its literal default when nothing on the page matches, so
every stage record carries the same keys whatever the markup looks like.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from flowcapture.core.models import Feature
from flowcapture.extraction.bullets import clean_text
from flowcapture.extraction.config import FeatureRule, TextFieldRule

_CARD_TAGS = ["div", "section", "article"]
_CARD_TITLE_SELECTOR = "h3, h4, strong, b, [class*='title']"


def _by_selector(soup: BeautifulSoup, rule: TextFieldRule) -> str | None:
    texts = [clean_text(node.get_text(" ")) for node in soup.select(rule.selector or "")]
    texts = [t for t in texts if t]
    if rule.contains:
        contains_re = re.compile(rule.contains, re.IGNORECASE)
        texts = [t for t in texts if contains_re.search(t)]
    if rule.index >= len(texts):
        return None
    return texts[rule.index]


def _by_pattern(flat_text: str, rule: TextFieldRule) -> str | None:
    match = re.search(rule.pattern or "", flat_text, re.IGNORECASE)
    if not match:
        return None
    groups = [g or "" for g in match.groups()] or [match.group(0)]
    try:
        return clean_text(rule.template.format(*groups)) or None
    except (IndexError, KeyError):
        return clean_text(match.group(0)) or None


def find_stage_fields(
    soup: BeautifulSoup, flat_text: str, rules: list[TextFieldRule]
) -> tuple[dict[str, str], list[str]]:
    """Return (fields, names_that_fell_back_to_default)."""
    fields: dict[str, str] = {}
    defaulted: list[str] = []
    for rule in rules:
        if rule.pattern:
            value = _by_pattern(flat_text, rule)
        elif rule.selector:
            value = _by_selector(soup, rule)
        else:
            value = None
        if value is None:
            defaulted.append(rule.name)
        fields[rule.name] = value if value is not None else rule.default
    return fields, defaulted


def _card_feature(card: Tag, card_text: str, rule: FeatureRule) -> Feature:
    title_node = card.select_one(_CARD_TITLE_SELECTOR)
    title = clean_text(title_node.get_text(" ")) if title_node else ""
    title = title or rule.title
    description = clean_text(card_text.replace(title, "", 1))
    return Feature(title=title, description=description or rule.default_description)


def find_features(
    soup: BeautifulSoup, rules: list[FeatureRule]
) -> tuple[list[Feature], bool]:
    """Return (features, matched). Defaults stand in when no card matched.

    For each rule the smallest container whose text matches the
    description pattern wins; a title-only match is the fallback.
    """
    if not rules:
        return [], True
    cards = [(node, clean_text(node.get_text(" "))) for node in soup.find_all(_CARD_TAGS)]

    features: list[Feature] = []
    for rule in rules:
        pattern = re.compile(rule.pattern, re.IGNORECASE)
        by_description = [(n, t) for n, t in cards if pattern.search(t)]
        candidates = by_description or [(n, t) for n, t in cards if rule.title in t]
        if not candidates:
            continue
        node, text = min(candidates, key=lambda c: len(c[1]))
        features.append(_card_feature(node, text, rule))

    if features:
        return features, True
    return [Feature(title=r.title, description=r.default_description) for r in rules], False

# src/extraction/numeric.py — v1
"""Regex-matched pricing / countdown fields with literal defaults."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from flowcapture.extraction.config import ExtractorConfig, NumericFieldRule


def _apply_rule(rule: NumericFieldRule, text: str) -> tuple[int | str, bool]:
    """Return (value, matched)."""
    flags = re.IGNORECASE if rule.ignore_case else 0
    match = re.search(rule.pattern, text, flags)
    if not match:
        return rule.default, False
    if rule.mode == "match":
        return match.group(0), True
    try:
        return int(match.group(1)), True
    except (IndexError, ValueError):
        return rule.default, False


def _progress_percent(soup: BeautifulSoup, config: ExtractorConfig) -> tuple[int, bool]:
    pattern = re.compile(config.progress_style_pattern, re.IGNORECASE)
    for node in soup.find_all(style=pattern):
        match = pattern.search(node.get("style") or "")
        if not match:
            continue
        try:
            return int(float(match.group(1))), True
        except (IndexError, ValueError):
            continue
    return config.progress_default, False


def find_numeric_fields(
    soup: BeautifulSoup, flat_text: str, config: ExtractorConfig
) -> tuple[dict[str, int | str], list[str]]:
    """Return (fields, names_that_fell_back_to_default)."""
    fields: dict[str, int | str] = {}
    defaulted: list[str] = []
    for rule in config.numeric_rules:
        value, matched = _apply_rule(rule, flat_text)
        fields[rule.name] = value
        if not matched:
            defaulted.append(rule.name)

    progress, matched = _progress_percent(soup, config)
    fields["progress_percent"] = progress
    if not matched:
        defaulted.append("progress_percent")
    return fields, defaulted

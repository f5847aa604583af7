# tests/unit/extraction/test_unit_avatar.py — v1
"""Tests for extraction/avatar.py — ordered image-reference strategies."""

from __future__ import annotations

from bs4 import BeautifulSoup

from flowcapture.extraction.avatar import (
    find_avatar,
    from_class_hint,
    from_inline_style,
    from_markup_scan,
)
from flowcapture.extraction.config import ExtractorConfig


def _data_url(payload_len: int) -> str:
    return "data:image/jpeg;base64," + "A" * payload_len


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestClassHint:
    def test_matches_hinted_container(self):
        url = _data_url(400)
        html = f'<div class="rounded-full" style="background-image: url(&quot;{url}&quot;)"></div>'
        assert from_class_hint(_soup(html), html, ExtractorConfig()) == url

    def test_ignores_short_data_url(self):
        url = _data_url(50)
        html = f'<div class="rounded-full" style="background-image: url({url})"></div>'
        assert from_class_hint(_soup(html), html, ExtractorConfig()) is None

    def test_ignores_non_data_url(self):
        html = '<div class="rounded-full" style="background-image: url(https://x/y.png)"></div>'
        assert from_class_hint(_soup(html), html, ExtractorConfig()) is None


class TestInlineStyle:
    def test_any_element_with_background(self):
        url = _data_url(400)
        html = f"<section><span style=\"background-image:url('{url}')\"></span></section>"
        assert from_inline_style(_soup(html), html, ExtractorConfig()) == url


class TestMarkupScan:
    def test_large_embedded_image_found_in_text(self):
        url = _data_url(10_000)
        html = f"<script>window.__state = {{avatar: \"{url}\"}}</script>"
        assert from_markup_scan(_soup(html), html, ExtractorConfig()) == url

    def test_icons_below_scan_threshold_skipped(self):
        icon = _data_url(300)
        html = f'<img src="{icon}">'
        assert from_markup_scan(_soup(html), html, ExtractorConfig()) is None


class TestFindAvatar:
    def test_class_hint_wins_over_inline(self):
        hinted = _data_url(400)
        other = _data_url(800)
        html = (
            f'<div style="background-image: url({other})"></div>'
            f'<div class="avatar rounded-full" style="background-image: url({hinted})"></div>'
        )
        ref, strategy = find_avatar(_soup(html), html, ExtractorConfig())
        assert ref == hinted
        assert strategy == "class_hint"

    def test_falls_through_to_markup_scan(self):
        url = _data_url(10_000)
        html = f'<img src="{url}" alt="profile">'
        ref, strategy = find_avatar(_soup(html), html, ExtractorConfig())
        assert ref == url
        assert strategy == "markup_scan"

    def test_nothing_found(self):
        html = "<div>No images here</div>"
        assert find_avatar(_soup(html), html, ExtractorConfig()) == (None, None)

    def test_custom_strategy_order(self):
        url = _data_url(10_000)
        html = f'<div class="rounded-full" style="background-image: url({url})"></div>'
        ref, strategy = find_avatar(
            _soup(html), html, ExtractorConfig(),
            strategies=[("markup_scan", from_markup_scan)],
        )
        assert strategy == "markup_scan"
        assert ref == url

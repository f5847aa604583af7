# tests/unit/extraction/test_unit_bullets.py — v1
"""Tests for extraction/bullets.py — list/paragraph bullet heuristic."""

from __future__ import annotations

from bs4 import BeautifulSoup

from flowcapture.extraction.bullets import clean_text, direct_text, find_bullets
from flowcapture.extraction.config import ExtractorConfig


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestHelpers:
    def test_clean_text(self):
        assert clean_text("  a \n\t b  ") == "a b"

    def test_direct_text_ignores_children(self):
        node = _soup("<li>Outer text <span>inner</span></li>").li
        assert direct_text(node) == "Outer text"


class TestFindBullets:
    def test_only_qualifying_item_kept(self):
        html = """
        <ul>
          <li>Short</li>
          <li>This line is long enough but has no allowed words in it</li>
          <li>4 people visited your profile this week</li>
          <li>""" + "profile " * 40 + """</li>
          <li></li>
        </ul>
        """
        assert find_bullets(_soup(html), ExtractorConfig()) == [
            "4 people visited your profile this week"
        ]

    def test_exact_duplicates_removed_in_order(self):
        html = """
        <ul>
          <li>Your stories were shared 3 times</li>
          <li>2 screenshots detected yesterday</li>
          <li>Your  stories were shared 3 times</li>
        </ul>
        """
        assert find_bullets(_soup(html), ExtractorConfig()) == [
            "Your stories were shared 3 times",
            "2 screenshots detected yesterday",
        ]

    def test_nested_text_fallback(self):
        html = "<ul><li><span>7 messages mention your profile</span></li></ul>"
        assert find_bullets(_soup(html), ExtractorConfig()) == ["7 messages mention your profile"]

    def test_paragraph_fallback(self):
        html = "<div><p>Someone in your region visited twice</p><p>tiny</p></div>"
        assert find_bullets(_soup(html), ExtractorConfig()) == [
            "Someone in your region visited twice"
        ]

    def test_paragraphs_ignored_when_list_items_qualify(self):
        html = (
            "<ul><li>3 followers visited your profile</li></ul>"
            "<p>Someone in your region visited twice</p>"
        )
        assert find_bullets(_soup(html), ExtractorConfig()) == ["3 followers visited your profile"]

    def test_keyword_match_is_case_insensitive(self):
        html = "<ul><li>PROFILE checked by many accounts</li></ul>"
        assert find_bullets(_soup(html), ExtractorConfig()) == ["PROFILE checked by many accounts"]

    def test_empty_allowlist_accepts_any_length_match(self):
        cfg = ExtractorConfig(bullet_keywords=[])
        html = "<ul><li>Anything at all goes here now</li></ul>"
        assert find_bullets(_soup(html), cfg) == ["Anything at all goes here now"]

# src/extraction/config.py — v1
"""Tunable parameters for the document extractor.

The stoplist, keyword allowlist and size thresholds are hand-tuned against
the driven site's current markup and are expected to drift. They live here
rather than in the heuristics so they can be replaced without touching
control flow.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class NumericFieldRule(BaseModel):
    """One regex-extracted field with its literal fallback.

    mode:
        "int"   — int() of capture group 1.
        "match" — the whole matched text.
    """

    name: str
    pattern: str
    default: int | str
    mode: Literal["int", "match"] = "int"
    ignore_case: bool = True


def _default_numeric_rules() -> list[NumericFieldRule]:
    return [
        NumericFieldRule(name="price", pattern=r"(\d+)\s*USD", default=199),
        NumericFieldRule(
            name="original_price", pattern=r"from\s*(\d+)\s*USD", default=1299
        ),
        NumericFieldRule(name="discount", pattern=r"(\d+)%\s*off", default=80),
        NumericFieldRule(
            name="countdown", pattern=r"\d{1,2}:\d{2}", default="14:59", mode="match"
        ),
        NumericFieldRule(
            name="guarantee_days",
            pattern=r"(\d+)[-\s]*day[^.!?]*guarantee",
            default=14,
        ),
    ]


class TextFieldRule(BaseModel):
    """One stage-specific text field with its literal fallback.

    Located either by selector (the index-th match, optionally filtered by
    the contains regex) or by pattern (regex over the flattened text, its
    groups rendered through template).
    """

    name: str
    default: str
    selector: str | None = None
    index: int = 0
    contains: str | None = None
    pattern: str | None = None
    template: str = "{0}"


class FeatureRule(BaseModel):
    """Full-report feature card: found by description pattern or title."""

    title: str
    pattern: str
    default_description: str


_HEADINGS = "h1, h2"


def _default_stage_fields() -> dict[str, list[TextFieldRule]]:
    return {
        "profile-confirm": [
            TextFieldRule(name="greeting", selector=_HEADINGS, default="Hello"),
            TextFieldRule(
                name="question", selector="p, span", contains="profile",
                default="Is this your profile?",
            ),
            TextFieldRule(
                name="primary_cta", selector="button",
                default="Continue, the profile is correct",
            ),
            TextFieldRule(
                name="secondary_cta", selector="button", index=1,
                default="No, I want to correct it",
            ),
        ],
        "processing": [
            TextFieldRule(name="title", selector=_HEADINGS, default="Processing data"),
            TextFieldRule(
                name="subtitle", selector="p",
                default="Our robots are analyzing the behavior of your followers",
            ),
        ],
        "full-report": [
            TextFieldRule(
                name="heading",
                selector="h1, h2, [class*='heading'], [class*='title']",
                default="Unlock Complete Report",
            ),
            TextFieldRule(
                name="cta",
                selector="button, a[class*='button'], [class*='cta']",
                default="I want the complete report",
            ),
            TextFieldRule(
                name="system_message",
                pattern=r"Our reporting system[^.]*\.",
                default="Our reporting system is the only truly functional system on the market.",
            ),
            TextFieldRule(
                name="bonus", pattern=r"bonus[^:]*:\s*([^.!?]+)",
                default="Ebook: Manual for attraction and re-attraction",
            ),
            TextFieldRule(
                name="guarantee", pattern=r"(\d+)[-\s]*day[^.!?]*guarantee",
                template="{0}-Day Guarantee", default="14-Day Guarantee",
            ),
        ],
    }


def _default_stage_features() -> dict[str, list[FeatureRule]]:
    return {
        "full-report": [
            FeatureRule(
                title="Story Repeats",
                pattern=r"viewed.*re-viewed|re-viewed.*stories",
                default_description="People who viewed and re-viewed your stories",
            ),
            FeatureRule(
                title="Visit Tracking",
                pattern=r"visiting.*profile|who.*visiting",
                default_description="Discover who is visiting your profile",
            ),
            FeatureRule(
                title="Mention Tracking",
                pattern=r"followers.*talk|talk.*about.*you",
                default_description="Find out which followers talk about you the most",
            ),
            FeatureRule(
                title="Who's Watching You",
                pattern=r"screenshots|screenshot.*profile",
                default_description="See who took SCREENSHOTS of your profile and stories",
            ),
        ],
    }


class ExtractorConfig(BaseModel):
    """Configuration consumed by extract_record()."""

    # --- Avatar ---
    avatar_class_hints: list[str] = Field(default_factory=lambda: ["rounded-full"])
    avatar_min_length: int = 200
    avatar_scan_min_length: int = 500

    # --- Display handle ---
    handle_marker: str = "@"
    handle_pattern: str = r"^@[\w.]+"
    handle_tags: list[str] = Field(
        default_factory=lambda: ["span", "div", "p", "h1", "h2", "h3", "h4"]
    )
    handle_stoplist: list[str] = Field(
        default_factory=lambda: ["Hello", "Is", "Continue", "No"]
    )
    handle_stoplist_ignore_case: bool = False

    # --- Bullets ---
    bullet_keywords: list[str] = Field(
        default_factory=lambda: [
            "mentions", "detected", "visited", "people", "screenshot",
            "region", "profile", "times", "yesterday", "shared", "stories",
            "messages", "followers",
        ]
    )
    bullet_min_length: int = 20
    bullet_max_length: int = 200

    # --- Numeric / marketing fields ---
    numeric_rules: list[NumericFieldRule] = Field(default_factory=_default_numeric_rules)
    progress_style_pattern: str = r"width:\s*(\d+(?:\.\d+)?)%"
    progress_default: int = 55

    # --- Stage-specific fields ---
    stage_fields: dict[str, list[TextFieldRule]] = Field(default_factory=_default_stage_fields)
    stage_features: dict[str, list[FeatureRule]] = Field(
        default_factory=_default_stage_features
    )

# src/extraction/document_extractor.py — v1
"""Document extractor — captured markup to ExtractedRecord.

Pure and total: missing fields fall back to their documented defaults and
never raise. Returns None only when the input cannot be parsed at all.

Usage:
    from flowcapture.extraction.document_extractor import extract_record
    record = extract_record(html)
"""

from __future__ import annotations

import logging
from pathlib import Path

from bs4 import BeautifulSoup

from flowcapture.core.models import ExtractedRecord
from flowcapture.extraction.avatar import find_avatar
from flowcapture.extraction.bullets import clean_text, find_bullets
from flowcapture.extraction.config import ExtractorConfig
from flowcapture.extraction.handle import find_display_name
from flowcapture.extraction.numeric import find_numeric_fields
from flowcapture.extraction.stage_fields import find_features, find_stage_fields

logger = logging.getLogger(__name__)


def extract_record(
    markup: str | bytes | None,
    config: ExtractorConfig | None = None,
    stage: str | None = None,
) -> ExtractedRecord | None:
    """Extract structured fields from one stage snapshot.

    Args:
        markup: Raw HTML as captured from the page.
        config: Heuristic configuration. Defaults to ExtractorConfig().
        stage: Stage the markup was captured at. Selects the stage-specific
            field and feature rules; None applies only the generic fields.

    Returns:
        ExtractedRecord, or None on unrecoverable parse failure.
    """
    config = config or ExtractorConfig()
    text = _coerce_markup(markup)
    if text is None:
        logger.warning("Cannot extract from %s input", type(markup).__name__)
        return None

    try:
        soup = BeautifulSoup(text, "html.parser")
    except Exception as e:
        logger.warning("Failed to parse markup (%d chars): %s", len(text), e)
        return None

    avatar_ref, avatar_strategy = find_avatar(soup, text, config)
    display_name = find_display_name(soup, config)
    bullets = find_bullets(soup, config)
    flat_text = clean_text(soup.get_text(" "))
    numeric_fields, defaulted = find_numeric_fields(soup, flat_text, config)
    stage_fields, stage_defaulted = find_stage_fields(
        soup, flat_text, config.stage_fields.get(stage, []) if stage else []
    )
    features, features_matched = find_features(
        soup, config.stage_features.get(stage, []) if stage else []
    )

    missing = [
        name for name, value in (
            ("avatar_ref", avatar_ref),
            ("display_name", display_name),
        )
        if value is None
    ]
    if not bullets:
        missing.append("bullets")
    missing.extend(defaulted)
    missing.extend(stage_defaulted)
    if not features_matched:
        missing.append("features")
    if missing:
        logger.debug("Extraction fell back to defaults for: %s", ", ".join(missing))

    return ExtractedRecord(
        stage=stage,
        avatar_ref=avatar_ref,
        avatar_strategy=avatar_strategy,
        display_name=display_name,
        heading=_first_heading(soup),
        bullets=bullets,
        cta_labels=_cta_labels(soup),
        numeric_fields=numeric_fields,
        stage_fields=stage_fields,
        features=features,
    )


def extract_file(
    path: Path, config: ExtractorConfig | None = None, stage: str | None = None
) -> ExtractedRecord | None:
    """Convenience: extract from a saved snapshot file."""
    return extract_record(path.read_bytes(), config, stage)


def _coerce_markup(markup: str | bytes | None) -> str | None:
    if isinstance(markup, str):
        return markup
    if isinstance(markup, bytes):
        return markup.decode("utf-8", errors="replace")
    return None


def _first_heading(soup: BeautifulSoup) -> str | None:
    node = soup.find(["h1", "h2"])
    if node is None:
        return None
    return clean_text(node.get_text(" ")) or None


def _cta_labels(soup: BeautifulSoup) -> list[str]:
    labels: list[str] = []
    for button in soup.find_all("button"):
        label = clean_text(button.get_text(" "))
        if label and label not in labels:
            labels.append(label)
    return labels

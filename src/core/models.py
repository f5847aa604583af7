# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RunStatus = Literal["processing", "completed", "failed"]


# === CAPTURE ===


class StageSnapshot(BaseModel):
    """Raw markup captured at one stage of a run. Never mutated after append."""

    model_config = ConfigDict(frozen=True)

    stage_name: str
    raw_markup: str
    captured_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Card(BaseModel):
    """One result card read from the terminal results stage."""

    subject_handle: str | None = None
    image_ref: str | None = None


# === RUN ===


class Run(BaseModel):
    """One end-to-end pipeline execution for one subject."""

    subject_id: str
    run_id: str
    snapshot_id: str
    status: RunStatus = "processing"
    created_at: datetime
    expires_at: datetime
    completed_at: datetime | None = None
    snapshots: list[StageSnapshot] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    error: str | None = None

    def stage(self, stage_name: str) -> StageSnapshot | None:
        """Return the first snapshot captured under stage_name."""
        for snapshot in self.snapshots:
            if snapshot.stage_name == stage_name:
                return snapshot
        return None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# === EXTRACTION ===


class Feature(BaseModel):
    """One feature card of the full report."""

    title: str
    description: str = ""


class ExtractedRecord(BaseModel):
    """Structured fields derived from one snapshot.

    Every field has a default: a field the heuristics could not find is
    simply left at its default rather than flagged. stage_fields and features
    hold the stage-specific values and are empty when no stage is given.
    """

    stage: str | None = None
    avatar_ref: str | None = None
    avatar_strategy: str | None = None
    display_name: str | None = None
    heading: str | None = None
    bullets: list[str] = Field(default_factory=list)
    cta_labels: list[str] = Field(default_factory=list)
    numeric_fields: dict[str, int | str] = Field(default_factory=dict)
    stage_fields: dict[str, str] = Field(default_factory=dict)
    features: list[Feature] = Field(default_factory=list)

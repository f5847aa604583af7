# src/api/models.py — v1
"""API-level models: StageReference, PipelineResult, QueueStatus."""

from __future__ import annotations

from pydantic import BaseModel, Field

from flowcapture.core.models import Card, ExtractedRecord


class StageReference(BaseModel):
    """Pointer to one captured stage, resolvable via get_stage_markup."""

    name: str
    reference: str

    @classmethod
    def for_stage(cls, template: str, snapshot_id: str, stage: str) -> StageReference:
        """Build the reference for stage from SNAPSHOT_REFERENCE_TEMPLATE."""
        return cls(name=stage, reference=template.format(snapshot_id=snapshot_id, stage=stage))


class PipelineResult(BaseModel):
    """Value returned to every caller of start() for one run."""

    run_id: str
    snapshot_id: str | None = None
    stages: list[StageReference] = Field(default_factory=list)
    cards: list[Card] = Field(default_factory=list)
    records: dict[str, ExtractedRecord] = Field(default_factory=dict)


class QueueStatus(BaseModel):
    """Snapshot of the dedup queue: in-flight subjects and their waiters."""

    in_flight: int = 0
    waiters: dict[str, int] = Field(default_factory=dict)

# src/cache/recent_cache.py — v1
"""Recent-result cache in front of the dedup queue.

A completed run younger than max_age_minutes is served as-is instead of
starting a new browser session. The result is rebuilt from the stored Run
and is identical to the one returned when the run completed.
"""

from __future__ import annotations

import logging
import time

from flowcapture.api.models import PipelineResult, StageReference
from flowcapture.core.models import ExtractedRecord, Run
from flowcapture.store.base_store import BaseSnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_TEMPLATE = "/api/snapshots/{snapshot_id}/{stage}"


def build_result(run: Run, reference_template: str = DEFAULT_REFERENCE_TEMPLATE) -> PipelineResult:
    """Rebuild the PipelineResult of a stored run, stages in capture order.

    Records come back from the snapshot metadata the sequencer wrote them to.
    """
    return PipelineResult(
        run_id=run.run_id,
        snapshot_id=run.snapshot_id,
        stages=[
            StageReference.for_stage(reference_template, run.snapshot_id, s.stage_name)
            for s in run.snapshots
        ],
        cards=list(run.cards),
        records={
            s.stage_name: ExtractedRecord.model_validate(s.metadata["record"])
            for s in run.snapshots
            if "record" in s.metadata
        },
    )


class RecentResultCache:
    """Serves the most recent completed run for a subject."""

    def __init__(
        self,
        store: BaseSnapshotStore,
        max_age_minutes: float = 60,
        reference_template: str = DEFAULT_REFERENCE_TEMPLATE,
    ) -> None:
        self._store = store
        self._max_age_minutes = max_age_minutes
        self._reference_template = reference_template

    async def lookup(
        self, subject_id: str, max_age_minutes: float | None = None
    ) -> PipelineResult | None:
        """Return the cached result for subject_id, or None on miss."""
        max_age = self._max_age_minutes if max_age_minutes is None else max_age_minutes
        run = await self._store.get_recent(subject_id, max_age)
        if run is None:
            logger.debug("Cache miss for %s", subject_id)
            return None
        age_s = time.time() - run.created_at.timestamp()
        logger.info("Cache hit for %s (run %s, %.0fs old)", subject_id, run.run_id, age_s)
        return build_result(run, self._reference_template)

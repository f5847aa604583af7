# src/api/facade.py — v1
"""Public API facade — single entry point for capture runs.

Usage:
    from flowcapture.api.facade import create_service
    service = create_service()
    result = await service.start("some_subject")
    html = await service.get_stage_markup(result.snapshot_id, "results-capture")

Request path for start():
  1. Recent-result cache: a completed run within the window is returned
  2. Dedup queue: join the in-flight run for the subject, if any
  3. Stage sequencer: otherwise start a new run
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flowcapture.api.models import PipelineResult, QueueStatus, StageReference
from flowcapture.cache.recent_cache import RecentResultCache
from flowcapture.config.settings import Settings, load_settings
from flowcapture.pipeline.sequencer import StageListener, StageSequencer
from flowcapture.queue.dedup_queue import DedupQueue

if TYPE_CHECKING:
    from flowcapture.browser.driver_factory import DriverFactory
    from flowcapture.store.base_store import BaseSnapshotStore

logger = logging.getLogger(__name__)


class PipelineService:
    """Cache, dedup queue and sequencer wired behind one start() call.

    Args:
        settings: Application settings.
        store: Snapshot store shared by the sequencer and the cache.
        queue: Per-subject dedup queue.
        sequencer: Stage sequencer running new captures.
        cache: Recent-result cache. Built from store and settings if None.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseSnapshotStore,
        queue: DedupQueue[PipelineResult],
        sequencer: StageSequencer,
        cache: RecentResultCache | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._queue = queue
        self._sequencer = sequencer
        self._cache = cache or RecentResultCache(
            store,
            max_age_minutes=settings.recent_max_age_minutes,
            reference_template=settings.snapshot_reference_template,
        )
        self._listeners: dict[str, list[StageListener]] = {}

    async def start(
        self,
        subject_id: str,
        on_stage: StageListener | None = None,
    ) -> PipelineResult:
        """Return the capture result for subject_id.

        Args:
            subject_id: Identifier to run the flow for.
            on_stage: Called with each StageReference of the run this
                caller is attached to, as it lands. Not called on a
                cache hit.

        Raises:
            ElementNotFound: A hard stage failed in the shared run.
            TimeoutExceeded: A hard stage timed out in the shared run.
        """
        cached = await self._cache.lookup(subject_id)
        if cached is not None:
            return cached

        if on_stage is not None:
            self._listeners.setdefault(subject_id, []).append(on_stage)
        try:
            return await self._queue.enqueue(
                subject_id, lambda: self._run(subject_id)
            )
        finally:
            if on_stage is not None:
                self._detach(subject_id, on_stage)

    async def get_stage_markup(self, snapshot_id: str, stage_name: str) -> str | None:
        """Raw markup of one captured stage, or None if absent or expired."""
        return await self._store.get_stage(snapshot_id, stage_name)

    async def get_recent(
        self, subject_id: str, max_age_minutes: float | None = None
    ) -> PipelineResult | None:
        """Most recent completed result within max_age_minutes, or None."""
        return await self._cache.lookup(subject_id, max_age_minutes)

    def queue_status(self) -> QueueStatus:
        return self._queue.status()

    async def close(self) -> None:
        await self._store.close()

    # --- internals ---

    async def _run(self, subject_id: str) -> PipelineResult:
        return await self._sequencer.run(
            subject_id, on_stage=lambda ref: self._broadcast(subject_id, ref)
        )

    def _broadcast(self, subject_id: str, reference: StageReference) -> None:
        for listener in list(self._listeners.get(subject_id, ())):
            try:
                listener(reference)
            except Exception:
                logger.warning(
                    "Stage listener failed for %s/%s",
                    subject_id, reference.name, exc_info=True,
                )

    def _detach(self, subject_id: str, listener: StageListener) -> None:
        listeners = self._listeners.get(subject_id)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            pass
        if not listeners:
            del self._listeners[subject_id]


def create_service(
    settings: Settings | None = None,
    driver_factory: DriverFactory | None = None,
) -> PipelineService:
    """Wire the default collaborators from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        driver_factory: Override for the Playwright driver factory.

    Returns:
        Ready-to-use PipelineService.
    """
    from flowcapture.browser.driver_factory import create_driver_factory
    from flowcapture.store.store_factory import create_snapshot_store

    settings = settings or load_settings()
    store = create_snapshot_store(settings)
    sequencer = StageSequencer(
        settings,
        store,
        driver_factory or create_driver_factory(settings),
    )
    logger.info(
        "Service ready: store=%s, target=%s", settings.store_backend, settings.target_url
    )
    return PipelineService(settings, store, DedupQueue(), sequencer)

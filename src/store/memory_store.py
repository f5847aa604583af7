# src/store/memory_store.py — v1
"""In-process snapshot store (STORE_BACKEND=memory).

Runs live in an injected KeyedRegistry keyed by (subject_id, run_id).
Each run gets an expiry timer scheduled at creation; reads also check the
deadline so a read racing the timer still returns not-found.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from flowcapture.core.models import Card, Run, StageSnapshot
from flowcapture.core.registry import KeyedRegistry
from flowcapture.store.base_store import BaseSnapshotStore

logger = logging.getLogger(__name__)

RunKey = tuple[str, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemorySnapshotStore(BaseSnapshotStore):
    """Process-local store; contents vanish with the process."""

    def __init__(
        self,
        ttl_seconds: float = 600,
        table: KeyedRegistry[RunKey, Run] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._runs: KeyedRegistry[RunKey, Run] = table if table is not None else KeyedRegistry()
        self._by_snapshot: dict[str, RunKey] = {}
        self._timers: dict[RunKey, asyncio.TimerHandle] = {}
        self._clock = clock or _utcnow

    async def append_stage(
        self, subject_id: str, run_id: str, snapshot: StageSnapshot
    ) -> str | None:
        key = (subject_id, run_id)
        now = self._clock()
        run, created = self._runs.insert_if_absent(
            key,
            lambda: Run(
                subject_id=subject_id,
                run_id=run_id,
                snapshot_id=uuid.uuid4().hex,
                created_at=now,
                expires_at=now + self._ttl,
            ),
        )
        if created:
            self._by_snapshot[run.snapshot_id] = key
            self._schedule_expiry(key)
            logger.debug("Run created: %s/%s → %s", subject_id, run_id, run.snapshot_id)
        elif run.is_expired(now):
            self._expire(key)
            logger.warning(
                "Run %s/%s expired before stage %s was appended",
                subject_id, run_id, snapshot.stage_name,
            )
            return None

        run.snapshots.append(snapshot)
        return run.snapshot_id

    async def get_stage(self, snapshot_id: str, stage_name: str) -> str | None:
        run = self._live_by_snapshot(snapshot_id)
        if run is None:
            return None
        snapshot = run.stage(stage_name)
        return snapshot.raw_markup if snapshot else None

    async def get_run(self, snapshot_id: str) -> Run | None:
        run = self._live_by_snapshot(snapshot_id)
        return run.model_copy(deep=True) if run else None

    async def get_recent(self, subject_id: str, max_age_minutes: float) -> Run | None:
        now = self._clock()
        cutoff = now - timedelta(minutes=max_age_minutes)
        best: Run | None = None
        for key in self._runs:
            if key[0] != subject_id:
                continue
            run = self._live(key, now)
            if run is None or run.status != "completed" or run.created_at < cutoff:
                continue
            if best is None or run.created_at > best.created_at:
                best = run
        return best.model_copy(deep=True) if best else None

    async def mark_completed(self, subject_id: str, run_id: str, cards: list[Card]) -> bool:
        run = self._transition((subject_id, run_id), "completed")
        if run is None:
            return False
        run.cards = list(cards)
        return True

    async def mark_failed(self, subject_id: str, run_id: str, error: str) -> bool:
        run = self._transition((subject_id, run_id), "failed")
        if run is None:
            return False
        run.error = error
        return True

    async def close(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    # --- internals ---

    def _transition(self, key: RunKey, status: str) -> Run | None:
        run = self._live(key, self._clock())
        if run is None:
            logger.warning("Cannot mark %s/%s %s: run not found", key[0], key[1], status)
            return None
        if run.status != "processing":
            logger.warning(
                "Ignoring %s for %s/%s: already %s", status, key[0], key[1], run.status
            )
            return None
        run.status = status  # type: ignore[assignment]
        run.completed_at = self._clock()
        return run

    def _live(self, key: RunKey, now: datetime) -> Run | None:
        run = self._runs.get(key)
        if run is None:
            return None
        if run.is_expired(now):
            self._expire(key)
            return None
        return run

    def _live_by_snapshot(self, snapshot_id: str) -> Run | None:
        key = self._by_snapshot.get(snapshot_id)
        if key is None:
            return None
        return self._live(key, self._clock())

    def _schedule_expiry(self, key: RunKey) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[key] = loop.call_later(self._ttl.total_seconds(), self._expire, key)

    def _expire(self, key: RunKey) -> None:
        handle = self._timers.pop(key, None)
        if handle is not None:
            handle.cancel()
        run = self._runs.remove(key)
        if run is not None:
            self._by_snapshot.pop(run.snapshot_id, None)
            logger.debug("Run expired: %s/%s", key[0], key[1])

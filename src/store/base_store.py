# src/store/base_store.py — v1
"""Abstract snapshot store interface.

Every Run expires at created_at + ttl regardless of reads. Callers treat a
None result from any read as the normal "not found" outcome, including
reads that race the expiry boundary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from flowcapture.core.models import Card, Run, StageSnapshot


class BaseSnapshotStore(ABC):
    """Time-bounded persistence of runs and their stage snapshots."""

    @abstractmethod
    async def append_stage(
        self, subject_id: str, run_id: str, snapshot: StageSnapshot
    ) -> str | None:
        """Append a snapshot, creating the Run on first call for the pair.

        Returns:
            The run's snapshot_id, or None if the backend is unavailable
            (the snapshot is then not persisted).
        """

    @abstractmethod
    async def get_stage(self, snapshot_id: str, stage_name: str) -> str | None:
        """Raw markup captured at stage_name, or None."""

    @abstractmethod
    async def get_run(self, snapshot_id: str) -> Run | None:
        """Full run with snapshots, or None."""

    @abstractmethod
    async def get_recent(self, subject_id: str, max_age_minutes: float) -> Run | None:
        """Most recent completed, unexpired run younger than max_age_minutes."""

    @abstractmethod
    async def mark_completed(self, subject_id: str, run_id: str, cards: list[Card]) -> bool:
        """Transition processing → completed. False if not applied."""

    @abstractmethod
    async def mark_failed(self, subject_id: str, run_id: str, error: str) -> bool:
        """Transition processing → failed. False if not applied."""

    async def close(self) -> None:
        """Release backend resources."""

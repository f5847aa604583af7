# src/store/redis_store.py — v1
"""Redis-based snapshot store (STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments sharing one result window.

Key layout (all keys expire at the run's absolute creation + ttl):
    {prefix}index:{subject_id}:{run_id}  → snapshot_id   (SET NX)
    {prefix}run:{snapshot_id}            → Run JSON without snapshots
    {prefix}stages:{snapshot_id}         → list of StageSnapshot JSON
    {prefix}recent:{subject_id}          → zset snapshot_id → created_at ts
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from flowcapture.core.errors import StoreUnavailable
from flowcapture.core.models import Card, Run, StageSnapshot
from flowcapture.store.base_store import BaseSnapshotStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RedisSnapshotStore(BaseSnapshotStore):
    """Redis-backed store. Backend errors degrade instead of raising."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: float = 600,
        key_prefix: str = "flowcapture:",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client: Any = aioredis.from_url(redis_url, decode_responses=True)
        self._ttl = timedelta(seconds=ttl_seconds)
        self._prefix = key_prefix
        self._clock = clock or _utcnow

    # --- keys ---

    def _index_key(self, subject_id: str, run_id: str) -> str:
        return f"{self._prefix}index:{subject_id}:{run_id}"

    def _run_key(self, snapshot_id: str) -> str:
        return f"{self._prefix}run:{snapshot_id}"

    def _stages_key(self, snapshot_id: str) -> str:
        return f"{self._prefix}stages:{snapshot_id}"

    def _recent_key(self, subject_id: str) -> str:
        return f"{self._prefix}recent:{subject_id}"

    # --- writes ---

    async def append_stage(
        self, subject_id: str, run_id: str, snapshot: StageSnapshot
    ) -> str | None:
        try:
            header = await self._ensure_run(subject_id, run_id)
            stages_key = self._stages_key(header.snapshot_id)
            await self._client.rpush(stages_key, snapshot.model_dump_json())
            await self._client.expireat(stages_key, _epoch(header.expires_at))
            return header.snapshot_id
        except StoreUnavailable as e:
            logger.warning("Stage %s not persisted: %s", snapshot.stage_name, e)
            return None
        except Exception as e:
            logger.warning(
                "Snapshot store unavailable, stage %s not persisted: %s",
                snapshot.stage_name, e,
            )
            return None

    async def _ensure_run(self, subject_id: str, run_id: str) -> Run:
        """Create the run header on first call for the pair; load it after."""
        now = self._clock()
        expires_at = now + self._ttl
        candidate = uuid.uuid4().hex
        index_key = self._index_key(subject_id, run_id)

        created = await self._client.set(
            index_key, candidate, nx=True, exat=_epoch(expires_at)
        )
        if created:
            header = Run(
                subject_id=subject_id,
                run_id=run_id,
                snapshot_id=candidate,
                created_at=now,
                expires_at=expires_at,
            )
            await self._client.set(
                self._run_key(candidate),
                header.model_dump_json(exclude={"snapshots"}),
                exat=_epoch(expires_at),
            )
            recent_key = self._recent_key(subject_id)
            await self._client.zadd(recent_key, {candidate: now.timestamp()})
            await self._client.zremrangebyscore(
                recent_key, "-inf", (now - self._ttl).timestamp()
            )
            await self._client.expireat(recent_key, _epoch(expires_at))
            logger.debug("Run created: %s/%s → %s", subject_id, run_id, candidate)
            return header

        snapshot_id = await self._client.get(index_key)
        header = await self._load_header(snapshot_id) if snapshot_id else None
        if header is None or header.is_expired(now):
            raise StoreUnavailable(f"run {subject_id}/{run_id} expired")
        return header

    async def mark_completed(self, subject_id: str, run_id: str, cards: list[Card]) -> bool:
        return await self._transition(
            subject_id, run_id, {"status": "completed", "cards": cards}
        )

    async def mark_failed(self, subject_id: str, run_id: str, error: str) -> bool:
        return await self._transition(
            subject_id, run_id, {"status": "failed", "error": error}
        )

    async def _transition(self, subject_id: str, run_id: str, update: dict[str, Any]) -> bool:
        try:
            snapshot_id = await self._client.get(self._index_key(subject_id, run_id))
            header = await self._load_header(snapshot_id) if snapshot_id else None
            if header is None:
                logger.warning(
                    "Cannot mark %s/%s %s: run not found",
                    subject_id, run_id, update["status"],
                )
                return False
            if header.status != "processing":
                logger.warning(
                    "Ignoring %s for %s/%s: already %s",
                    update["status"], subject_id, run_id, header.status,
                )
                return False
            updated = header.model_copy(update={**update, "completed_at": self._clock()})
            await self._client.set(
                self._run_key(header.snapshot_id),
                updated.model_dump_json(exclude={"snapshots"}),
                keepttl=True,
            )
            return True
        except Exception as e:
            logger.warning(
                "Snapshot store unavailable, %s/%s not marked %s: %s",
                subject_id, run_id, update["status"], e,
            )
            return False

    # --- reads ---

    async def get_stage(self, snapshot_id: str, stage_name: str) -> str | None:
        run = await self.get_run(snapshot_id)
        if run is None:
            return None
        snapshot = run.stage(stage_name)
        return snapshot.raw_markup if snapshot else None

    async def get_run(self, snapshot_id: str) -> Run | None:
        try:
            header = await self._load_header(snapshot_id)
            if header is None or header.is_expired(self._clock()):
                return None
            raw_stages = await self._client.lrange(self._stages_key(snapshot_id), 0, -1)
            snapshots = [StageSnapshot.model_validate_json(s) for s in raw_stages]
        except Exception as e:
            logger.warning("Failed to read run %s: %s", snapshot_id, e)
            return None
        return header.model_copy(update={"snapshots": snapshots})

    async def get_recent(self, subject_id: str, max_age_minutes: float) -> Run | None:
        now = self._clock()
        cutoff = now - timedelta(minutes=max_age_minutes)
        try:
            snapshot_ids = await self._client.zrevrangebyscore(
                self._recent_key(subject_id), "+inf", cutoff.timestamp()
            )
        except Exception as e:
            logger.warning("Recent lookup failed for %s: %s", subject_id, e)
            return None
        for snapshot_id in snapshot_ids:
            run = await self.get_run(snapshot_id)
            if run is not None and run.status == "completed" and run.created_at >= cutoff:
                return run
        return None

    async def _load_header(self, snapshot_id: str) -> Run | None:
        data = await self._client.get(self._run_key(snapshot_id))
        if data is None:
            return None
        try:
            return Run.model_validate_json(data)
        except Exception as e:
            logger.warning("Failed to deserialize run %s: %s", snapshot_id, e)
            return None

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()


def _epoch(moment: datetime) -> int:
    """Whole-second EXPIREAT value, rounded up so keys never expire before the deadline."""
    return math.ceil(moment.timestamp())

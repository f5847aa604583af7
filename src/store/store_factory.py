# src/store/store_factory.py — v1
"""Factory for snapshot store instantiation."""

from __future__ import annotations

from flowcapture.config.settings import Settings
from flowcapture.store.base_store import BaseSnapshotStore


def create_snapshot_store(settings: Settings | None = None) -> BaseSnapshotStore:
    """Instantiate the configured store backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseSnapshotStore implementation.
    """
    backend = "memory" if settings is None else settings.store_backend
    ttl = 600 if settings is None else settings.snapshot_ttl_seconds

    if backend == "memory":
        from flowcapture.store.memory_store import MemorySnapshotStore
        return MemorySnapshotStore(ttl_seconds=ttl)

    if backend == "redis":
        from flowcapture.store.redis_store import RedisSnapshotStore
        if settings is None or not settings.store_redis_url:
            raise ValueError(
                "STORE_REDIS_URL must be set when STORE_BACKEND=redis"
            )
        return RedisSnapshotStore(
            redis_url=settings.store_redis_url,
            ttl_seconds=ttl,
            key_prefix=settings.store_key_prefix,
        )

    raise ValueError(f"Unsupported store backend: {backend!r}")

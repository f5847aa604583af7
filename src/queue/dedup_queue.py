# src/queue/dedup_queue.py — v1
"""Per-subject request deduplication.

At most one run is in flight per subject. Callers arriving while a run is
in flight join it and receive the same result or the same error. Joined
callers await through asyncio.shield, so a caller going away never
cancels the shared run. The in-flight marker is cleared when the run
finishes, whatever the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from flowcapture.api.models import QueueStatus
from flowcapture.core.registry import KeyedRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DedupQueue(Generic[T]):
    """Coalesces concurrent requests for the same subject onto one task.

    Args:
        in_flight: Registry holding subject_id → running task. Injected so
            tests and embedding services can inspect or share it.
    """

    def __init__(
        self, in_flight: KeyedRegistry[str, asyncio.Task[T]] | None = None
    ) -> None:
        self._in_flight: KeyedRegistry[str, asyncio.Task[T]] = (
            in_flight if in_flight is not None else KeyedRegistry()
        )
        self._waiters: dict[str, int] = {}

    async def enqueue(
        self, subject_id: str, start_fn: Callable[[], Awaitable[T]]
    ) -> T:
        """Join the in-flight run for subject_id, or start one with start_fn.

        Raises:
            Whatever the shared run raised; every joined caller sees it.
        """
        task, started = self._in_flight.insert_if_absent(
            subject_id, lambda: asyncio.ensure_future(start_fn())
        )
        if started:
            task.add_done_callback(lambda t: self._on_done(subject_id, t))
            logger.info("Started run for %s", subject_id)
        else:
            logger.info("Joined in-flight run for %s", subject_id)

        self._waiters[subject_id] = self._waiters.get(subject_id, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            remaining = self._waiters.get(subject_id, 1) - 1
            if remaining > 0:
                self._waiters[subject_id] = remaining
            else:
                self._waiters.pop(subject_id, None)

    def status(self) -> QueueStatus:
        """In-flight subjects and how many callers await each."""
        return QueueStatus(
            in_flight=len(self._in_flight),
            waiters={s: self._waiters.get(s, 0) for s in self._in_flight},
        )

    def _on_done(self, subject_id: str, task: asyncio.Task[Any]) -> None:
        self._in_flight.remove(subject_id, expected=task)
        if task.cancelled():
            logger.warning("Run for %s was cancelled", subject_id)
            return
        # Retrieve so a run nobody awaits anymore does not warn at GC.
        error = task.exception()
        if error is not None:
            logger.debug("Run for %s finished with %s", subject_id, type(error).__name__)

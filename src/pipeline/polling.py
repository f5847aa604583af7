# src/pipeline/polling.py — v1
"""Bounded cooperative polling."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Predicate = Callable[[], Awaitable[bool] | bool]


async def poll_until(
    predicate: Predicate,
    interval_s: float,
    timeout_s: float,
    description: str = "condition",
    log_every_s: float = 5.0,
) -> bool:
    """Check predicate every interval_s until it holds or timeout_s elapses.

    Each wait is an asyncio.sleep, so other coroutines keep running.
    Exceptions from predicate count as "not yet".

    Returns:
        True if the predicate held before the deadline, False otherwise.
    """
    start = time.monotonic()
    deadline = start + timeout_s
    next_log = start + log_every_s
    attempts = 0

    while True:
        attempts += 1
        try:
            result = predicate()
            if inspect.isawaitable(result):
                result = await result
            if result:
                return True
        except Exception as e:
            logger.debug("Poll for %s raised (treated as not ready): %s", description, e)

        now = time.monotonic()
        if now >= deadline:
            logger.debug(
                "Gave up polling for %s after %d attempts (%.1fs)",
                description, attempts, now - start,
            )
            return False
        if now >= next_log:
            logger.info(
                "Still waiting for %s: %.1fs elapsed, %d attempts",
                description, now - start, attempts,
            )
            next_log = now + log_every_s
        await asyncio.sleep(min(interval_s, max(deadline - now, 0.0)))

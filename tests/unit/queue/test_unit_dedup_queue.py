# tests/unit/queue/test_unit_dedup_queue.py — v1
"""Tests for queue/dedup_queue.py — per-subject coalescing."""

from __future__ import annotations

import asyncio

import pytest

from flowcapture.core.registry import KeyedRegistry
from flowcapture.queue.dedup_queue import DedupQueue


class TestDedupQueue:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_run(self):
        queue: DedupQueue[str] = DedupQueue()
        starts = []
        release = asyncio.Event()

        async def start() -> str:
            starts.append(1)
            await release.wait()
            return f"result-{len(starts)}"

        callers = [asyncio.create_task(queue.enqueue("alice", start)) for _ in range(5)]
        await asyncio.sleep(0)
        assert "alice" in queue.status().waiters
        release.set()
        results = await asyncio.gather(*callers)

        assert len(starts) == 1
        assert results == ["result-1"] * 5
        assert "alice" not in queue.status().waiters

    @pytest.mark.asyncio
    async def test_error_reaches_every_caller(self):
        queue: DedupQueue[str] = DedupQueue()
        release = asyncio.Event()

        async def start() -> str:
            await release.wait()
            raise ValueError("stage failed")

        callers = [asyncio.create_task(queue.enqueue("alice", start)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        outcomes = await asyncio.gather(*callers, return_exceptions=True)

        assert all(isinstance(o, ValueError) for o in outcomes)
        assert len({id(o) for o in outcomes}) == 1
        assert "alice" not in queue.status().waiters

    @pytest.mark.asyncio
    async def test_marker_cleared_allows_new_run(self):
        queue: DedupQueue[int] = DedupQueue()
        counter = iter(range(10))

        async def start() -> int:
            return next(counter)

        assert await queue.enqueue("alice", start) == 0
        await asyncio.sleep(0)
        assert await queue.enqueue("alice", start) == 1

    @pytest.mark.asyncio
    async def test_distinct_subjects_run_independently(self):
        queue: DedupQueue[str] = DedupQueue()
        release_a = asyncio.Event()

        async def slow() -> str:
            await release_a.wait()
            return "a"

        async def fast() -> str:
            return "b"

        task_a = asyncio.create_task(queue.enqueue("a", slow))
        await asyncio.sleep(0)
        assert await queue.enqueue("b", fast) == "b"
        assert not task_a.done()
        release_a.set()
        assert await task_a == "a"

    @pytest.mark.asyncio
    async def test_caller_cancellation_does_not_cancel_run(self):
        queue: DedupQueue[str] = DedupQueue()
        release = asyncio.Event()
        finished = []

        async def start() -> str:
            await release.wait()
            finished.append(1)
            return "done"

        first = asyncio.create_task(queue.enqueue("alice", start))
        second = asyncio.create_task(queue.enqueue("alice", start))
        await asyncio.sleep(0)
        first.cancel()
        await asyncio.sleep(0)
        release.set()
        assert await second == "done"
        assert finished == [1]

    @pytest.mark.asyncio
    async def test_status_reports_waiters(self):
        registry: KeyedRegistry = KeyedRegistry()
        queue: DedupQueue[str] = DedupQueue(in_flight=registry)
        release = asyncio.Event()

        async def start() -> str:
            await release.wait()
            return "ok"

        callers = [asyncio.create_task(queue.enqueue("alice", start)) for _ in range(3)]
        await asyncio.sleep(0)
        status = queue.status()
        assert status.in_flight == 1
        assert status.waiters == {"alice": 3}
        assert "alice" in registry

        release.set()
        await asyncio.gather(*callers)
        await asyncio.sleep(0)
        assert queue.status().in_flight == 0
        assert queue.status().waiters == {}

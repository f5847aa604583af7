# tests/unit/api/test_unit_facade.py — v1
"""Tests for api/facade.py — cache, dedup and sequencer behind start()."""

from __future__ import annotations

import asyncio

import pytest

from flowcapture.api.facade import PipelineService, create_service
from flowcapture.core.errors import ElementNotFound
from flowcapture.pipeline.sequencer import StageSequencer
from flowcapture.queue.dedup_queue import DedupQueue
from flowcapture.store.memory_store import MemorySnapshotStore


class CountingFactory:
    def __init__(self, make_driver, **driver_kwargs) -> None:
        self.make_driver = make_driver
        self.driver_kwargs = driver_kwargs
        self.drivers = []

    def __call__(self):
        driver = self.make_driver(**self.driver_kwargs)
        self.drivers.append(driver)
        return driver


def _service(settings, factory) -> PipelineService:
    store = MemorySnapshotStore(ttl_seconds=settings.snapshot_ttl_seconds)
    sequencer = StageSequencer(settings, store, factory)
    return PipelineService(settings, store, DedupQueue(), sequencer)


class TestStart:
    @pytest.mark.asyncio
    async def test_returns_result(self, fast_settings, make_driver):
        service = _service(fast_settings, CountingFactory(make_driver))
        result = await service.start("alice")
        assert result.snapshot_id is not None
        assert len(result.cards) == 2
        await service.close()

    @pytest.mark.asyncio
    async def test_recent_result_served_from_cache(self, fast_settings, make_driver):
        factory = CountingFactory(make_driver)
        service = _service(fast_settings, factory)
        first = await service.start("alice")
        second = await service.start("alice")
        assert second == first
        assert len(factory.drivers) == 1
        await service.close()

    @pytest.mark.asyncio
    async def test_concurrent_callers_join_one_run(self, fast_settings, make_driver):
        factory = CountingFactory(make_driver, delay=0.05)
        service = _service(fast_settings, factory)
        seen_a, seen_b = [], []

        results = await asyncio.gather(
            service.start("alice", on_stage=lambda r: seen_a.append(r.name)),
            service.start("alice", on_stage=lambda r: seen_b.append(r.name)),
        )

        assert len(factory.drivers) == 1
        assert results[0] == results[1]
        assert seen_a == seen_b == [s.name for s in results[0].stages]
        await service.close()

    @pytest.mark.asyncio
    async def test_failing_listener_isolated(self, fast_settings, make_driver):
        factory = CountingFactory(make_driver, delay=0.02)
        service = _service(fast_settings, factory)
        seen = []

        def explode(ref):
            raise RuntimeError("client went away")

        results = await asyncio.gather(
            service.start("alice", on_stage=explode),
            service.start("alice", on_stage=lambda r: seen.append(r.name)),
        )
        assert seen == [s.name for s in results[0].stages]
        await service.close()

    @pytest.mark.asyncio
    async def test_error_reaches_all_callers_and_is_not_cached(
        self, fast_settings, make_driver, all_visible
    ):
        factory = CountingFactory(
            make_driver,
            visible=all_visible - {"button:has-text('Reveal Stalkers')"},
            delay=0.02,
        )
        service = _service(fast_settings, factory)

        outcomes = await asyncio.gather(
            service.start("alice"), service.start("alice"), return_exceptions=True,
        )
        assert all(isinstance(o, ElementNotFound) for o in outcomes)
        assert len(factory.drivers) == 1

        with pytest.raises(ElementNotFound):
            await service.start("alice")
        assert len(factory.drivers) == 2
        await service.close()

    @pytest.mark.asyncio
    async def test_distinct_subjects_independent(self, fast_settings, make_driver):
        factory = CountingFactory(make_driver, delay=0.02)
        service = _service(fast_settings, factory)
        a, b = await asyncio.gather(service.start("alice"), service.start("bob"))
        assert len(factory.drivers) == 2
        assert a.snapshot_id != b.snapshot_id
        await service.close()


class TestReads:
    @pytest.mark.asyncio
    async def test_get_stage_markup(self, fast_settings, make_driver):
        service = _service(fast_settings, CountingFactory(make_driver))
        result = await service.start("alice")
        markup = await service.get_stage_markup(result.snapshot_id, "results-capture")
        assert markup is not None and markup.startswith("<html>")
        assert await service.get_stage_markup(result.snapshot_id, "nope") is None
        assert await service.get_stage_markup("unknown", "landing") is None
        await service.close()

    @pytest.mark.asyncio
    async def test_get_recent(self, fast_settings, make_driver):
        service = _service(fast_settings, CountingFactory(make_driver))
        assert await service.get_recent("alice") is None
        result = await service.start("alice")
        assert await service.get_recent("alice") == result
        await service.close()

    @pytest.mark.asyncio
    async def test_queue_status_idle(self, fast_settings, make_driver):
        service = _service(fast_settings, CountingFactory(make_driver))
        assert service.queue_status().in_flight == 0


class TestCreateService:
    @pytest.mark.asyncio
    async def test_wires_defaults(self, fast_settings, make_driver):
        factory = CountingFactory(make_driver)
        service = create_service(fast_settings, driver_factory=factory)
        result = await service.start("alice")
        assert len(factory.drivers) == 1
        assert result.stages
        await service.close()

# src/pipeline/sequencer.py — v1
"""Stage sequencer — drives one browser session through the stage graph.

Every stage runs through the same routine:
  1. Locate: first locator with a visible match wins, rescanned until the
     stage deadline
  2. Interact: navigate / click / fill
  3. Settle: fixed pause for client-side transitions
  4. Readiness: wait for a marker or poll for rendered elements
  5. Capture: append the page markup to the snapshot store, with the
     ExtractedRecord in its metadata for stages marked extract

Hard-stage failures raise ElementNotFound / TimeoutExceeded listing the
interactive elements on the page. Soft-stage failures are logged and the
stage is omitted from the result.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from flowcapture.api.models import PipelineResult, StageReference
from flowcapture.core.errors import (
    DriverError,
    DriverTimeout,
    ElementNotFound,
    SoftStageSkipped,
    TimeoutExceeded,
)
from flowcapture.core.models import Card, ExtractedRecord, StageSnapshot
from flowcapture.extraction import document_extractor
from flowcapture.logging.context import set_run_context, set_stage_context
from flowcapture.pipeline.polling import poll_until
from flowcapture.pipeline.stages import Marker, Poll, StageSpec, default_stage_graph

if TYPE_CHECKING:
    from flowcapture.browser.base_driver import BaseAutomationDriver
    from flowcapture.browser.driver_factory import DriverFactory
    from flowcapture.config.settings import Settings
    from flowcapture.store.base_store import BaseSnapshotStore

logger = logging.getLogger(__name__)

StageListener = Callable[[StageReference], None]

_HANDLE_SELECTOR = "text=/^@/"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_run_id() -> str:
    """Run id: UTC timestamp prefix + short random suffix, sortable by start."""
    now = datetime.now(timezone.utc)
    return f"{now.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class StageSequencer:
    """Runs the stage graph for one subject per call to run().

    Args:
        settings: Application settings (target URL, timing, debug dir).
        store: Snapshot store receiving every captured stage.
        driver_factory: Builds a fresh driver per run.
        stages: Stage graph override. Defaults to default_stage_graph().
        clock: Timestamp source for captured_at.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseSnapshotStore,
        driver_factory: DriverFactory,
        stages: list[StageSpec] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._driver_factory = driver_factory
        self._stages = stages if stages is not None else default_stage_graph(settings)
        self._clock = clock or _utcnow
        self._extractor_config = settings.extractor_config()

    @property
    def stages(self) -> list[StageSpec]:
        return list(self._stages)

    async def run(
        self,
        subject_id: str,
        on_stage: StageListener | None = None,
    ) -> PipelineResult:
        """Execute every stage for subject_id.

        Args:
            subject_id: Identifier typed into the flow.
            on_stage: Called synchronously after each stored capture.

        Returns:
            PipelineResult with stage references and result cards.

        Raises:
            ElementNotFound: A hard stage's element never became visible.
            TimeoutExceeded: A hard stage's readiness deadline passed.
        """
        run_id = generate_run_id()
        set_run_context(subject_id, run_id)
        start_time = time.monotonic()
        logger.info("Starting run for %s (%d stages)", subject_id, len(self._stages))

        references: list[StageReference] = []
        cards: list[Card] = []
        records: dict[str, ExtractedRecord] = {}
        snapshot_id: str | None = None
        current = ""

        driver = self._driver_factory()
        try:
            async with driver:
                try:
                    for spec in self._stages:
                        current = spec.name
                        set_stage_context(spec.name)
                        try:
                            outcome = await self._execute_stage(driver, spec, subject_id)
                        except SoftStageSkipped as e:
                            logger.warning("%s", e)
                            continue

                        if spec.read_cards:
                            cards = outcome["cards"]
                        if not spec.capture:
                            continue

                        stored = await self._store.append_stage(
                            subject_id, run_id, outcome["snapshot"]
                        )
                        if stored is None:
                            logger.warning("Stage %s captured but not stored", spec.name)
                            continue
                        snapshot_id = stored
                        if outcome["record"] is not None:
                            records[spec.name] = outcome["record"]
                        reference = StageReference.for_stage(
                            self._settings.snapshot_reference_template,
                            snapshot_id,
                            spec.name,
                        )
                        references.append(reference)
                        _notify(on_stage, reference)
                except Exception:
                    await self._capture_debug(driver, subject_id, run_id, current)
                    raise
        except Exception as e:
            set_stage_context(None)
            logger.error("Run failed at stage %s: %s", current or "startup", e)
            if snapshot_id is not None:
                await self._store.mark_failed(subject_id, run_id, str(e))
            raise

        set_stage_context(None)
        if snapshot_id is not None:
            await self._store.mark_completed(subject_id, run_id, cards)
        logger.info(
            "Run completed: %d stages captured, %d cards, %.1fs",
            len(references), len(cards), time.monotonic() - start_time,
        )
        return PipelineResult(
            run_id=run_id,
            snapshot_id=snapshot_id,
            stages=references,
            cards=cards,
            records=records,
        )

    # --- stage routine ---

    async def _execute_stage(
        self,
        driver: BaseAutomationDriver,
        spec: StageSpec,
        subject_id: str,
    ) -> dict[str, Any]:
        """Run one stage. Returns {'snapshot', 'cards', 'record'}."""
        logger.debug("Entering stage %s", spec.name)
        metadata: dict[str, Any] = {}

        try:
            selector = await self._locate(driver, spec) if spec.locators else None

            if spec.action == "navigate":
                await driver.navigate(self._settings.target_url, spec.timeout_ms)
                metadata["url"] = await driver.current_url()
            elif spec.action == "click" and selector is not None:
                await driver.click(selector)
            elif spec.action == "fill" and selector is not None:
                await driver.fill(selector, subject_id)
                metadata["subject_id"] = subject_id

            await driver.pause(spec.settle_ms)

            if isinstance(spec.readiness, Marker):
                await self._await_marker(driver, spec, spec.readiness)
            elif isinstance(spec.readiness, Poll):
                await self._await_rendered(driver, spec, spec.readiness)

            if spec.capture_handle:
                handle = await driver.text_of(_HANDLE_SELECTOR)
                if handle:
                    metadata["displayed_handle"] = handle

            cards: list[Card] = []
            if spec.read_cards:
                raw = await driver.read_cards(self._settings.results_card_selector)
                cards = [
                    Card(subject_handle=c.get("handle"), image_ref=c.get("image"))
                    for c in raw
                ]
                metadata["card_count"] = len(cards)
                logger.info("Read %d result cards", len(cards))

            snapshot = None
            record = None
            if spec.capture:
                markup = await driver.content()
                if spec.extract:
                    record = self._extract(markup, spec.name)
                    if record is not None:
                        metadata["record"] = record.model_dump(mode="json")
                snapshot = StageSnapshot(
                    stage_name=spec.name,
                    raw_markup=markup,
                    captured_at=self._clock(),
                    metadata=metadata,
                )
        except DriverTimeout as e:
            await self._fail(
                driver, spec,
                lambda present: TimeoutExceeded(
                    spec.name, spec.timeout_ms, present, detail=str(e)
                ),
                reason=str(e),
            )
        except DriverError as e:
            await self._fail(
                driver, spec,
                lambda present: ElementNotFound(
                    spec.name, list(spec.locators), present, spec.timeout_ms
                ),
                reason=str(e),
            )

        return {"snapshot": snapshot, "cards": cards, "record": record}

    def _extract(self, markup: str, stage: str) -> ExtractedRecord | None:
        record = document_extractor.extract_record(
            markup, self._extractor_config, stage=stage
        )
        if record is None:
            logger.warning("Stage %s markup could not be parsed", stage)
        return record

    async def _locate(self, driver: BaseAutomationDriver, spec: StageSpec) -> str:
        """Return the first locator with a visible match before the deadline."""
        found: list[str] = []

        async def any_visible() -> bool:
            for locator in spec.locators:
                if await driver.is_visible(locator):
                    found.append(locator)
                    return True
            return False

        ok = await poll_until(
            any_visible,
            interval_s=self._settings.locator_poll_interval_ms / 1000,
            timeout_s=spec.timeout_ms / 1000,
            description=f"{spec.name} element",
        )
        if not ok:
            await self._fail(
                driver, spec,
                lambda present: ElementNotFound(
                    spec.name, list(spec.locators), present, spec.timeout_ms
                ),
                reason="no locator matched a visible element",
            )
        logger.debug("Stage %s located %r", spec.name, found[0])
        return found[0]

    async def _await_marker(
        self, driver: BaseAutomationDriver, spec: StageSpec, marker: Marker
    ) -> None:
        if await driver.wait_for_visible(marker.selector, spec.timeout_ms):
            return
        await self._fail(
            driver, spec,
            lambda present: ElementNotFound(
                spec.name, [marker.selector], present, spec.timeout_ms
            ),
            reason=f"marker {marker.selector!r} not visible after {spec.timeout_ms}ms",
        )

    async def _await_rendered(
        self, driver: BaseAutomationDriver, spec: StageSpec, poll: Poll
    ) -> None:
        async def rendered() -> bool:
            return await driver.count_rendered(poll.selector) > 0

        ok = await poll_until(
            rendered,
            interval_s=poll.interval_ms / 1000,
            timeout_s=poll.max_wait_ms / 1000,
            description=f"rendered {poll.selector}",
        )
        if ok:
            return
        await self._fail(
            driver, spec,
            lambda present: TimeoutExceeded(
                spec.name, poll.max_wait_ms, present,
                detail=f"no rendered {poll.selector}",
            ),
            reason=f"no rendered {poll.selector} after {poll.max_wait_ms}ms",
        )

    async def _fail(
        self,
        driver: BaseAutomationDriver,
        spec: StageSpec,
        fatal: Callable[[list[str]], Exception],
        reason: str = "",
    ) -> None:
        """Raise the fatal error for a hard stage, SoftStageSkipped otherwise."""
        if not spec.required:
            raise SoftStageSkipped(spec.name, reason or "readiness not observed")
        present = await driver.describe_interactive_elements()
        raise fatal(present)

    # --- diagnostics ---

    async def _capture_debug(
        self,
        driver: BaseAutomationDriver,
        subject_id: str,
        run_id: str,
        stage: str,
    ) -> None:
        """Write a screenshot and the final markup to DEBUG_CAPTURE_DIR."""
        debug_dir = self._settings.debug_capture_dir
        if debug_dir is None:
            return
        stem = f"{subject_id}_{run_id}_{stage or 'startup'}"
        if await driver.screenshot(debug_dir / f"{stem}.png"):
            logger.info("Debug screenshot saved: %s", debug_dir / f"{stem}.png")
        try:
            markup = await driver.content()
            debug_dir.mkdir(parents=True, exist_ok=True)
            (debug_dir / f"{stem}.html").write_text(markup, encoding="utf-8")
        except (DriverError, OSError) as e:
            logger.warning("Could not save debug markup: %s", e)


def _notify(listener: StageListener | None, reference: StageReference) -> None:
    if listener is None:
        return
    try:
        listener(reference)
    except Exception:
        logger.warning("Stage listener failed for %s", reference.name, exc_info=True)

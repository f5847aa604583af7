# src/pipeline/stages.py — v1
"""Declarative stage graph for the capture flow.

Each StageSpec describes one step; the sequencer runs them all through a
single generic routine. Hard stages (required=True) abort the run on
failure, soft stages are skipped with a warning.

Selectors use Playwright syntax (text=, :has-text(), :visible).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from flowcapture.config.settings import Settings

StageAction = Literal["none", "navigate", "click", "fill"]


class Marker(BaseModel):
    """Readiness: selector becomes visible before the stage deadline."""

    model_config = ConfigDict(frozen=True)

    selector: str


class Poll(BaseModel):
    """Readiness: selector has at least one rendered match, checked on a cadence."""

    model_config = ConfigDict(frozen=True)

    selector: str
    interval_ms: int = 100
    max_wait_ms: int = 60_000


class StageSpec(BaseModel):
    """One stage of the flow."""

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = True
    timeout_ms: int = 10_000
    locators: tuple[str, ...] = ()
    action: StageAction = "none"
    readiness: Marker | Poll | None = None
    capture: bool = False
    settle_ms: int = 0
    read_cards: bool = False
    capture_handle: bool = False
    extract: bool = False


CONFIRM_PROFILE_LOCATORS = (
    "button:has-text('Continue, the profile is correct')",
    "button:has-text('profile is correct')",
    "button:has-text('Continue')",
    "button:visible",
)


def default_stage_graph(settings: Settings) -> list[StageSpec]:
    """Build the ordered stage list, applying timeout overrides.

    Args:
        settings: Application settings (timeouts, poll cadence, toggles).

    Returns:
        StageSpec list in execution order.
    """
    stages = [
        StageSpec(
            name="landing",
            timeout_ms=settings.navigation_timeout_ms,
            action="navigate",
            capture=True,
        ),
        StageSpec(
            name="trigger-action",
            timeout_ms=10_000,
            locators=("button:has-text('Reveal Stalkers')",),
            action="click",
        ),
        StageSpec(
            name="identifier-entry",
            timeout_ms=8_000,
            locators=('input[type="text"]', "input"),
            action="fill",
            capture=True,
        ),
        StageSpec(
            name="confirm-progress",
            required=False,
            timeout_ms=8_000,
            locators=("button:has-text('Continue')", "button[type='submit']"),
            action="click",
            settle_ms=100,
        ),
        StageSpec(
            name="analyzing",
            required=False,
            timeout_ms=8_000,
            readiness=Marker(selector="text=Analyzing"),
            capture=True,
        ),
        StageSpec(
            name="profile-confirm",
            required=False,
            timeout_ms=5_000,
            settle_ms=2_000,
            capture=True,
            capture_handle=True,
            extract=True,
        ),
        StageSpec(
            name="confirm-action",
            timeout_ms=9_000,
            locators=CONFIRM_PROFILE_LOCATORS,
            action="click",
            settle_ms=500,
        ),
        StageSpec(
            name="processing",
            required=False,
            timeout_ms=10_000,
            readiness=Marker(selector="text=Processing data"),
            capture=True,
            extract=True,
        ),
        StageSpec(
            name="results-wait",
            timeout_ms=settings.results_max_wait_ms,
            readiness=Poll(
                selector=settings.results_card_selector,
                interval_ms=settings.results_poll_interval_ms,
                max_wait_ms=settings.results_max_wait_ms,
            ),
        ),
        StageSpec(
            name="results-capture",
            capture=True,
            read_cards=True,
        ),
    ]
    if settings.capture_full_report:
        stages.append(
            StageSpec(
                name="full-report",
                required=False,
                timeout_ms=5_000,
                locators=("button:has-text('View Full Report')",),
                action="click",
                settle_ms=500,
                capture=True,
                extract=True,
            )
        )

    overrides = settings.stage_timeout_overrides
    return [
        s.model_copy(update={"timeout_ms": overrides[s.name]}) if s.name in overrides else s
        for s in stages
    ]

# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scripted fake automation driver, fast settings, and sample
captured markup. No browser, no network — all I/O is faked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from flowcapture.browser.base_driver import BaseAutomationDriver
from flowcapture.config.settings import Settings, load_settings
from flowcapture.core.errors import DriverTimeout
from flowcapture.pipeline.stages import Marker, Poll, default_stage_graph

# Base64 payload long enough for every avatar threshold.
_B64 = "iVBORw0KGgo" + "A" * 1200


# === FAKE DRIVER ===


class FakeDriver(BaseAutomationDriver):
    """Scripted driver: a selector is visible iff it is in `visible`."""

    def __init__(
        self,
        visible: set[str] | None = None,
        cards: list[dict[str, Any]] | None = None,
        rendered: int = 3,
        interactive: list[str] | None = None,
        handle_text: str = "@john_doe",
        delay: float = 0.0,
        navigation_timeout: bool = False,
    ) -> None:
        self.visible = set(visible or ())
        self.cards = cards if cards is not None else [
            {"handle": "@alice", "image": "https://cdn.example/a.jpg"},
            {"handle": "@bob", "image": None},
        ]
        self.rendered = rendered
        self.interactive = interactive if interactive is not None else [
            'button "Start over"', 'input[type="search"]',
        ]
        self.handle_text = handle_text
        self.delay = delay
        self.navigation_timeout = navigation_timeout
        self.actions: list[tuple[str, ...]] = []
        self.started = False
        self.closed = False
        self.url = "about:blank"

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def navigate(self, url: str, timeout_ms: int) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.navigation_timeout:
            raise DriverTimeout(f"Navigation to {url} timed out")
        self.url = url
        self.actions.append(("navigate", url))

    async def is_visible(self, selector: str) -> bool:
        return selector in self.visible

    async def wait_for_visible(self, selector: str, timeout_ms: int) -> bool:
        return selector in self.visible

    async def click(self, selector: str) -> None:
        self.actions.append(("click", selector))

    async def fill(self, selector: str, text: str) -> None:
        self.actions.append(("fill", selector, text))

    async def text_of(self, selector: str) -> str | None:
        return self.handle_text if selector in self.visible else None

    async def content(self) -> str:
        return f"<html><body><p>after {len(self.actions)} actions</p></body></html>"

    async def count_rendered(self, css_selector: str) -> int:
        return self.rendered

    async def read_cards(self, css_selector: str) -> list[dict[str, Any]]:
        return list(self.cards)

    async def describe_interactive_elements(self) -> list[str]:
        return list(self.interactive)

    async def current_url(self) -> str:
        return self.url

    async def pause(self, ms: int) -> None:
        await asyncio.sleep(0)


def selectors_for(settings: Settings) -> set[str]:
    """Every locator and marker of the default graph: a fully cooperative page."""
    selectors: set[str] = set()
    for spec in default_stage_graph(settings):
        selectors.update(spec.locators)
        if isinstance(spec.readiness, (Marker, Poll)):
            selectors.add(spec.readiness.selector)
    selectors.add("text=/^@/")
    return selectors


# === FIXTURES: Logging ===


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by setup_logging() so streams never outlive a test."""
    yield
    root = logging.getLogger("flowcapture")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()


# === FIXTURES: Settings ===


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with millisecond-scale timeouts for scripted runs."""
    graph = default_stage_graph(Settings(_env_file=None))
    return load_settings(
        _env_file=None,
        target_url="https://flow.example/start",
        stage_timeout_overrides={s.name: 50 for s in graph},
        locator_poll_interval_ms=5,
        results_poll_interval_ms=5,
        results_max_wait_ms=60,
    )


@pytest.fixture
def all_visible(fast_settings: Settings) -> set[str]:
    return selectors_for(fast_settings)


@pytest.fixture
def make_driver(all_visible: set[str]):
    """Build a FakeDriver; defaults to every stage selector visible."""

    def _make(**kwargs: Any) -> FakeDriver:
        kwargs.setdefault("visible", set(all_visible))
        return FakeDriver(**kwargs)

    return _make


# === FIXTURES: Sample markup ===


@pytest.fixture
def avatar_data_url() -> str:
    return f"data:image/png;base64,{_B64}"


@pytest.fixture
def profile_markup(avatar_data_url: str) -> str:
    """Profile-confirm style page with avatar, handle, bullets and pricing."""
    return f"""
    <html><body>
      <h1>Is this your profile?</h1>
      <div class="w-24 h-24 rounded-full" style="background-image: url('{avatar_data_url}')"></div>
      <span>@john_doeHello</span>
      <div><span>@john_doe</span> Hello, is this the profile? Continue</div>
      <ul>
        <li>3 people visited your profile yesterday</li>
        <li>Your stories were shared 12 times</li>
        <li>ok</li>
      </ul>
      <div style="width: 72%" class="bar"></div>
      <p>Unlock now for 49 USD, from 999 USD. 95% off today only.</p>
      <p>Offer ends in 09:30. 30-day money back guarantee.</p>
      <button>Continue, the profile is correct</button>
      <button>No, I want to correct it</button>
    </body></html>
    """


@pytest.fixture
def bare_markup() -> str:
    """Markup carrying none of the extractable fields."""
    return "<html><body><div>Nothing to see</div></body></html>"

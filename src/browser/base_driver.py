# src/browser/base_driver.py — v1
"""Abstract automation driver interface.

One driver instance owns one browser session. Drivers are async context
managers: entering starts the session, leaving always closes it.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType
from typing import Any


class BaseAutomationDriver(ABC):
    """Navigate / locate / interact / read-markup primitives over one session."""

    @abstractmethod
    async def start(self) -> None:
        """Open the browser session."""

    @abstractmethod
    async def close(self) -> None:
        """Release the browser session. Must be safe to call twice."""

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        """Load url, returning once the DOM is ready."""

    @abstractmethod
    async def is_visible(self, selector: str) -> bool:
        """Whether the first match of selector is currently visible."""

    @abstractmethod
    async def wait_for_visible(self, selector: str, timeout_ms: int) -> bool:
        """Wait for selector to become visible. False on timeout, never raises."""

    @abstractmethod
    async def click(self, selector: str) -> None:
        """Click the first match of selector."""

    @abstractmethod
    async def fill(self, selector: str, text: str) -> None:
        """Type text into the first match of selector."""

    @abstractmethod
    async def text_of(self, selector: str) -> str | None:
        """Trimmed text of the first match, or None if absent."""

    @abstractmethod
    async def content(self) -> str:
        """Serialized markup of the current document."""

    @abstractmethod
    async def count_rendered(self, css_selector: str) -> int:
        """Number of matches that are present with a non-zero rendered size."""

    @abstractmethod
    async def read_cards(self, css_selector: str) -> list[dict[str, Any]]:
        """Read result cards as dicts with 'handle' and 'image' keys."""

    @abstractmethod
    async def describe_interactive_elements(self) -> list[str]:
        """Short descriptions of buttons, inputs and links on the page."""

    @abstractmethod
    async def current_url(self) -> str:
        """URL of the current document."""

    async def screenshot(self, path: Path) -> bool:
        """Save a full-page screenshot. Drivers without a screen return False."""
        return False

    async def pause(self, ms: int) -> None:
        """Let the page settle. Yields to the event loop."""
        if ms > 0:
            await asyncio.sleep(ms / 1000)

    async def __aenter__(self) -> BaseAutomationDriver:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

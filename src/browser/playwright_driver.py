# src/browser/playwright_driver.py — v1
"""Playwright-backed automation driver (async API, headless Chromium).

Requires the 'playwright' package and a Chromium build:
    pip install playwright && playwright install chromium
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from flowcapture.browser.base_driver import BaseAutomationDriver
from flowcapture.core.errors import DriverError, DriverTimeout

logger = logging.getLogger(__name__)

_MAX_DESCRIBED_ELEMENTS = 40

_COUNT_RENDERED_JS = """
(selector) => {
  let rendered = 0;
  for (const el of document.querySelectorAll(selector)) {
    const rect = el.getBoundingClientRect();
    if (rect.width > 0 && rect.height > 0) rendered += 1;
  }
  return rendered;
}
"""

_READ_CARDS_JS = """
(selector) => [...document.querySelectorAll(selector)].map((el) => {
  const imageDiv = el.querySelector("div[style*='background-image']");
  const name = el.querySelector("h4");
  const bg = imageDiv ? imageDiv.style.backgroundImage : "";
  return {
    handle: name ? name.textContent.trim() : null,
    image: bg ? bg.replace(/url\\(["']?(.*?)["']?\\)/, "$1") : null,
  };
})
"""

_DESCRIBE_JS = """
() => [...document.querySelectorAll(
  "button, input, textarea, select, a[href], [role='button']"
)].map((el) => ({
  tag: el.tagName.toLowerCase(),
  type: el.getAttribute("type") || "",
  name: el.getAttribute("name") || "",
  id: el.id || "",
  placeholder: el.getAttribute("placeholder") || "",
  text: (el.textContent || "").trim().slice(0, 60),
  visible: el.offsetParent !== null,
}))
"""


def describe_element(info: dict[str, Any]) -> str:
    """Render one element summary from _DESCRIBE_JS as a compact string."""
    attrs = [
        f'{key}="{info[key]}"'
        for key in ("type", "name", "id", "placeholder")
        if info.get(key)
    ]
    head = info.get("tag", "?")
    if attrs:
        head = f"{head}[{' '.join(attrs)}]"
    text = info.get("text") or ""
    label = f'{head} "{text}"' if text else head
    if not info.get("visible", True):
        label = f"{label} (hidden)"
    return label


class PlaywrightDriver(BaseAutomationDriver):
    """One headless Chromium browser and page per instance."""

    def __init__(
        self,
        headless: bool = True,
        launch_args: list[str] | None = None,
    ) -> None:
        self._headless = headless
        self._launch_args = launch_args or []
        self._playwright: Any = None
        self._browser: Any = None
        self._page: Any = None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless, args=self._launch_args,
            )
            self._page = await self._browser.new_page()
        except PlaywrightError as e:
            await self.close()
            raise DriverError(f"Browser launch failed: {e}") from e
        logger.debug("Browser session started")

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError:
                logger.debug("Browser close failed", exc_info=True)
            self._browser = None
            self._page = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError:
                logger.debug("Playwright stop failed", exc_info=True)
            self._playwright = None

    @property
    def page(self) -> Any:
        if self._page is None:
            raise DriverError("Browser session is not started")
        return self._page

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise DriverTimeout(f"Navigation to {url} timed out: {e}") from e
        except PlaywrightError as e:
            raise DriverError(f"Navigation to {url} failed: {e}") from e

    async def is_visible(self, selector: str) -> bool:
        try:
            return await self.page.locator(selector).first.is_visible()
        except PlaywrightError:
            return False

    async def wait_for_visible(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.locator(selector).first.wait_for(
                state="visible", timeout=timeout_ms,
            )
            return True
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            logger.debug("wait_for_visible(%s) failed: %s", selector, e)
            return False

    async def click(self, selector: str) -> None:
        try:
            await self.page.locator(selector).first.click()
        except PlaywrightTimeoutError as e:
            raise DriverTimeout(f"Click on {selector!r} timed out") from e
        except PlaywrightError as e:
            raise DriverError(f"Click on {selector!r} failed: {e}") from e

    async def fill(self, selector: str, text: str) -> None:
        try:
            await self.page.locator(selector).first.fill(text)
        except PlaywrightTimeoutError as e:
            raise DriverTimeout(f"Fill on {selector!r} timed out") from e
        except PlaywrightError as e:
            raise DriverError(f"Fill on {selector!r} failed: {e}") from e

    async def text_of(self, selector: str) -> str | None:
        locator = self.page.locator(selector).first
        try:
            if await locator.count() == 0:
                return None
            text = await locator.text_content()
        except PlaywrightError:
            return None
        return text.strip() if text else None

    async def content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as e:
            raise DriverError(f"Reading page content failed: {e}") from e

    async def count_rendered(self, css_selector: str) -> int:
        try:
            return int(await self.page.evaluate(_COUNT_RENDERED_JS, css_selector))
        except PlaywrightError as e:
            raise DriverError(f"Render check failed: {e}") from e

    async def read_cards(self, css_selector: str) -> list[dict[str, Any]]:
        try:
            return list(await self.page.evaluate(_READ_CARDS_JS, css_selector))
        except PlaywrightError as e:
            raise DriverError(f"Reading cards failed: {e}") from e

    async def describe_interactive_elements(self) -> list[str]:
        try:
            infos = await self.page.evaluate(_DESCRIBE_JS)
        except PlaywrightError:
            logger.debug("Could not enumerate interactive elements", exc_info=True)
            return []
        return [describe_element(i) for i in infos[:_MAX_DESCRIBED_ELEMENTS]]

    async def current_url(self) -> str:
        return self.page.url

    async def screenshot(self, path: Path) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
            return True
        except (PlaywrightError, DriverError, OSError) as e:
            logger.warning("Could not take screenshot: %s", e)
            return False

    async def pause(self, ms: int) -> None:
        if ms > 0:
            await self.page.wait_for_timeout(ms)

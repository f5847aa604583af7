# src/browser/driver_factory.py — v1
"""Factory for per-run automation drivers."""

from __future__ import annotations

from collections.abc import Callable

from flowcapture.browser.base_driver import BaseAutomationDriver
from flowcapture.config.settings import Settings

DriverFactory = Callable[[], BaseAutomationDriver]


def create_driver_factory(settings: Settings | None = None) -> DriverFactory:
    """Return a callable building a fresh, unstarted driver for each run.

    Sessions are never shared: every call yields a new browser.
    """
    headless = True if settings is None else settings.browser_headless
    launch_args = [] if settings is None else settings.browser_launch_args_list

    def factory() -> BaseAutomationDriver:
        from flowcapture.browser.playwright_driver import PlaywrightDriver

        return PlaywrightDriver(headless=headless, launch_args=launch_args)

    return factory

# src/core/errors.py — v1
"""Error taxonomy for the capture pipeline.

Fatal errors (ElementNotFound, TimeoutExceeded) abort a run and reach
every caller joined on it. StoreUnavailable and SoftStageSkipped never
leave their component: the store converts the former into a degraded
result and the sequencer turns the latter into an omitted stage.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline errors."""


def _format_elements(present_elements: list[str]) -> str:
    if not present_elements:
        return "none"
    return ", ".join(present_elements)


class ElementNotFound(PipelineError):
    """A required element did not appear within a hard stage's timeout."""

    def __init__(
        self,
        stage: str,
        selectors: list[str],
        present_elements: list[str],
        timeout_ms: int | None = None,
    ) -> None:
        self.stage = stage
        self.selectors = list(selectors)
        self.present_elements = list(present_elements)
        self.timeout_ms = timeout_ms
        waited = f" within {timeout_ms}ms" if timeout_ms is not None else ""
        super().__init__(
            f"Stage '{stage}': no visible element matched "
            f"{', '.join(repr(s) for s in self.selectors) or 'readiness marker'}"
            f"{waited}. Interactive elements present: "
            f"{_format_elements(self.present_elements)}"
        )


class TimeoutExceeded(PipelineError):
    """A hard stage's readiness predicate was not satisfied before its deadline."""

    def __init__(
        self,
        stage: str,
        waited_ms: int,
        present_elements: list[str],
        detail: str = "",
    ) -> None:
        self.stage = stage
        self.waited_ms = waited_ms
        self.present_elements = list(present_elements)
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Stage '{stage}': readiness not reached after {waited_ms}ms{suffix}. "
            f"Interactive elements present: {_format_elements(self.present_elements)}"
        )


class StoreUnavailable(PipelineError):
    """The snapshot store backend cannot be reached."""


class SoftStageSkipped(PipelineError):
    """A soft stage's readiness signal was not observed in time."""

    def __init__(self, stage: str, reason: str) -> None:
        self.stage = stage
        self.reason = reason
        super().__init__(f"Stage '{stage}' skipped: {reason}")


class DriverError(PipelineError):
    """A browser primitive failed (element detached, page crashed, ...)."""


class DriverTimeout(DriverError):
    """A browser primitive exceeded its own timeout."""

# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py — error messages carry diagnostics."""

from __future__ import annotations

from flowcapture.core.errors import (
    DriverError,
    DriverTimeout,
    ElementNotFound,
    PipelineError,
    SoftStageSkipped,
    TimeoutExceeded,
)


class TestElementNotFound:
    def test_message_lists_present_elements(self):
        err = ElementNotFound(
            "trigger-action",
            ["button:has-text('Reveal Stalkers')"],
            ['button "Start over"', 'input[type="search"]'],
            timeout_ms=10000,
        )
        msg = str(err)
        assert "trigger-action" in msg
        assert "Reveal Stalkers" in msg
        assert "within 10000ms" in msg
        assert 'button "Start over"' in msg
        assert 'input[type="search"]' in msg
        assert err.present_elements == ['button "Start over"', 'input[type="search"]']

    def test_no_elements_present(self):
        err = ElementNotFound("landing", ["input"], [])
        assert "Interactive elements present: none" in str(err)

    def test_is_pipeline_error(self):
        assert isinstance(ElementNotFound("s", [], []), PipelineError)


class TestTimeoutExceeded:
    def test_message(self):
        err = TimeoutExceeded("results-wait", 60000, ["button \"Retry\""], detail="no cards")
        msg = str(err)
        assert "results-wait" in msg
        assert "60000ms" in msg
        assert "(no cards)" in msg
        assert 'button "Retry"' in msg
        assert err.waited_ms == 60000


class TestOtherErrors:
    def test_soft_stage_skipped(self):
        err = SoftStageSkipped("analyzing", "marker not visible")
        assert err.stage == "analyzing"
        assert "skipped" in str(err)

    def test_driver_timeout_is_driver_error(self):
        assert issubclass(DriverTimeout, DriverError)

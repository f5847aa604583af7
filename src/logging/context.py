# src/logging/context.py — v1
"""Contextual logging support — attach subject_id, run_id, stage to log records.

Context variables are task-local under asyncio, so concurrent runs for
distinct subjects never see each other's context.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per run.
_subject_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "subject_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    subject_id: str | None = None
    run_id: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        subject_id=_subject_id.get(),
        run_id=_run_id.get(),
        stage=_stage.get(),
    )


def set_run_context(subject_id: str, run_id: str) -> None:
    """Set run-level context (called once per run)."""
    _subject_id.set(subject_id)
    _run_id.set(run_id)
    _stage.set(None)


def set_stage_context(stage: str | None) -> None:
    """Set stage-level context (called per stage)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _subject_id.set(None)
    _run_id.set(None)
    _stage.set(None)

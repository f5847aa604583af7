# src/logging/logger.py — v1
"""Logger factory with JSON and text formatters.

Both formatters stamp records with the run context from logging.context,
so lines emitted by concurrent runs can be told apart.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from flowcapture.logging.context import LogContext, get_context

_ROOT_LOGGER = "flowcapture"
_QUIET_LOGGERS = ("asyncio", "playwright")


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, run context nested under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line format for terminals: time, level, logger, [subject] (stage)."""

    def format(self, record: logging.LogRecord) -> str:
        line = " ".join([
            _record_time(record).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
            *_context_tags(get_context()),
            f"— {record.getMessage()}",
        ])
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _context_tags(ctx: LogContext) -> list[str]:
    tags: list[str] = []
    if ctx.subject_id:
        tags.append(f"[{ctx.subject_id}]")
    if ctx.run_id:
        # random suffix of generate_run_id()
        tags.append(f"#{ctx.run_id.rsplit('_', 1)[-1]}")
    if ctx.stage:
        tags.append(f"({ctx.stage})")
    return tags


def _make_formatter(log_format: str) -> logging.Formatter:
    return JsonFormatter() if log_format == "json" else TextFormatter()


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """(Re)configure the flowcapture logger: stderr plus an optional rotating file.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text".
        log_file: Rotating log file path. None logs to stderr only.
        rotation: Size at which the file rotates (e.g. "10MB").
        retention: Rotated files kept.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()

    formatter = _make_formatter(log_format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from flowcapture.logging.handlers import create_rotating_handler

        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

# src/logging/logger.py — v3
"""Formatters and setup for the ``llmpipe`` logger tree.

Modules call ``logging.getLogger(__name__)`` and never configure handlers
themselves. Console output goes to stderr because the CLI prints results
on stdout.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from llmpipe.logging.context import LogContext, get_context

if TYPE_CHECKING:
    from llmpipe.config.settings import Settings

ROOT_LOGGER = "llmpipe"


class _ContextFormatter(logging.Formatter):
    """Snapshots the log context and timestamp for each record."""

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created, timezone.utc)
        text = self.render(record, when, get_context())
        if record.exc_info and record.exc_info[1] is not None:
            text = self.attach_exception(text, self.formatException(record.exc_info))
        return text

    def render(self, record: logging.LogRecord, when: datetime, ctx: LogContext) -> str:
        raise NotImplementedError

    def attach_exception(self, text: str, trace: str) -> str:
        return f"{text}\n{trace}"


class JsonFormatter(_ContextFormatter):
    """One JSON object per line.

    ``extra={"data": {...}}`` on a logging call lands under ``"data"``.
    """

    def render(self, record: logging.LogRecord, when: datetime, ctx: LogContext) -> str:
        entry: dict[str, Any] = {
            "timestamp": when.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if fields := ctx.as_dict():
            entry["context"] = fields
        if data := getattr(record, "data", None):
            entry["data"] = data
        return json.dumps(entry, default=str)

    def attach_exception(self, text: str, trace: str) -> str:
        entry = json.loads(text)
        entry["exception"] = trace
        return json.dumps(entry, default=str)


class TextFormatter(_ContextFormatter):
    """``time [LEVEL] logger <request> [provider] (stage) — message``"""

    def render(self, record: logging.LogRecord, when: datetime, ctx: LogContext) -> str:
        tags = [
            f"<{ctx.request_id}>" if ctx.request_id else "",
            f"[{ctx.provider}]" if ctx.provider else "",
            f"({ctx.stage})" if ctx.stage else "",
        ]
        head = " ".join(
            p for p in (when.strftime("%Y-%m-%d %H:%M:%S"), f"[{record.levelname:8s}]",
                        record.name, *tags) if p
        )
        return f"{head} — {record.getMessage()}"


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Logger:
    """(Re)configure the ``llmpipe`` logger; returns it.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional file, rotated per ``rotation``.
        rotation: Size ("10MB") or interval ("daily").
        retention: Rotated files to keep.
    """
    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        from llmpipe.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    root = logging.getLogger(ROOT_LOGGER)
    for old in root.handlers:
        old.close()
    root.handlers.clear()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return root


def setup_logging_from_settings(
    settings: Settings, level: str | None = None,
) -> logging.Logger:
    """Apply the LOG_* settings; ``level`` overrides LOG_LEVEL."""
    return setup_logging(
        level=level or settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

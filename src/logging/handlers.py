# src/logging/handlers.py — v3
"""Rotating file handlers for LOG_FILE.

LOG_ROTATION is either a size ("10MB", "512 KB") or an interval name
("hourly", "daily", "midnight", "weekly").
"""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path

_SIZE_RE = re.compile(r"^(\d+)\s*([KMG])B$", re.IGNORECASE)
_UNIT_SHIFT = {"K": 10, "M": 20, "G": 30}

_INTERVALS: dict[str, str] = {
    "hourly": "H",
    "daily": "D",
    "midnight": "midnight",
    "weekly": "W0",
}


def _parse_size(size_str: str) -> int:
    """'10MB' -> bytes. KB, MB and GB only."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) << _UNIT_SHIFT[match.group(2).upper()]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> logging.Handler:
    """File handler rotating by size or on an interval.

    The parent directory is created if needed.

    Raises:
        ValueError: ``rotation`` is neither a size nor a known interval.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    interval = _INTERVALS.get(rotation.strip().lower())
    if interval is None:
        return RotatingFileHandler(
            path, maxBytes=_parse_size(rotation), backupCount=retention, encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        path, when=interval, backupCount=retention, encoding="utf-8", utc=True,
    )

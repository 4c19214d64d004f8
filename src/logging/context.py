# src/logging/context.py — v2
"""Contextual logging support — request context fields attached to log records.

Values live in contextvars, so each asyncio task (one per batch item) keeps
its own context.
"""

from __future__ import annotations

import contextvars
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)

_VARS: dict[str, contextvars.ContextVar[str | None]] = {
    "request_id": _request_id,
    "provider": _provider,
    "stage": _stage,
}


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    request_id: str | None = None
    provider: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        provider=_provider.get(),
        stage=_stage.get(),
    )


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def set_request_context(request_id: str | None = None) -> str:
    """Set the request id for the current task; generates one if omitted."""
    rid = request_id or new_request_id()
    _request_id.set(rid)
    return rid


@contextmanager
def log_context(**values: str | None) -> Iterator[None]:
    """Temporarily set context fields (request_id, provider, stage)."""
    tokens = []
    for name, value in values.items():
        var = _VARS.get(name)
        if var is None:
            raise KeyError(f"Unknown log context field: {name!r}")
        tokens.append((var, var.set(value)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    for var in _VARS.values():
        var.set(None)

# src/llm/failure_classifier.py — v3
"""Classify provider exceptions into quota / transport / unknown.

Heuristics work on the HTTP status code when the SDK exposes one, then on
the exception type name and message, so adapters never need to import SDK
exception classes. Typed ProviderError subclasses carry their own kind.
"""

from __future__ import annotations

import asyncio
import re

from llmpipe.core.errors import (
    ProviderError,
    ProviderQuotaExceeded,
    ProviderTransportError,
    ProviderUnavailable,
)
from llmpipe.router.models import ErrorKind

_QUOTA_STATUS = frozenset({402, 429})
_AUTH_STATUS = frozenset({401, 403})
_TRANSPORT_STATUS = frozenset({408, 500, 502, 503, 504, 529})

_QUOTA_PATTERNS: tuple[str, ...] = (
    r"quota",
    r"resource_?exhausted",
    r"insufficient",
    r"billing",
    r"payment",
    r"credits",
    r"usage limit",
    r"exceeded your",
    r"too many requests",
    r"rate ?limit",
    r"\b429\b",
)
_TRANSPORT_PATTERNS: tuple[str, ...] = (
    r"timeout",
    r"timed out",
    r"connection",
    r"network",
    r"temporarily unavailable",
    r"could not resolve host",
    r"\bdns\b",
    r"deadline",
    r"\b50[0234]\b",
    r"server error",
    r"overloaded",
)

# Status codes only count as whole numbers ("max_tokens 1500" is not a 500).
_QUOTA_RE = re.compile("|".join(_QUOTA_PATTERNS))
_TRANSPORT_RE = re.compile("|".join(_TRANSPORT_PATTERNS))


def status_code_of(error: BaseException) -> int | None:
    """HTTP status carried by an SDK exception, if any."""
    for holder in (error, getattr(error, "response", None)):
        code = getattr(holder, "status_code", None)
        if isinstance(code, int):
            return code
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised by a provider call to an ErrorKind."""
    if isinstance(error, ProviderError):
        return ErrorKind(error.error_kind)
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ErrorKind.TRANSPORT

    status = status_code_of(error)
    if status in _QUOTA_STATUS:
        return ErrorKind.QUOTA
    if status in _TRANSPORT_STATUS:
        return ErrorKind.TRANSPORT

    msg = str(error).lower()
    name = type(error).__name__.lower()

    if _QUOTA_RE.search(msg) or _QUOTA_RE.search(name):
        return ErrorKind.QUOTA
    if _TRANSPORT_RE.search(msg) or _TRANSPORT_RE.search(name):
        return ErrorKind.TRANSPORT
    return ErrorKind.UNKNOWN


def to_provider_error(provider: str, error: BaseException) -> ProviderError:
    """Wrap an SDK exception in the matching ProviderError subclass.

    Rejected credentials become ProviderUnavailable.
    """
    if isinstance(error, ProviderError):
        return error
    message = f"{type(error).__name__}: {error}"
    if status_code_of(error) in _AUTH_STATUS:
        return ProviderUnavailable(provider, message)
    kind = classify_error(error)
    if kind is ErrorKind.QUOTA:
        return ProviderQuotaExceeded(provider, message)
    if kind is ErrorKind.TRANSPORT:
        return ProviderTransportError(provider, message)
    return ProviderError(provider, message)

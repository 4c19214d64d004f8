# tests/unit/llm/test_unit_failure_classifier.py — v2
"""Tests for llm/failure_classifier.py."""

from __future__ import annotations

import asyncio

import pytest

from llmpipe.core.errors import (
    ProviderError,
    ProviderQuotaExceeded,
    ProviderTransportError,
    ProviderUnavailable,
)
from llmpipe.llm.failure_classifier import classify_error, to_provider_error
from llmpipe.router.models import ErrorKind


class RateLimitError(Exception):
    pass


class TestClassifyError:
    @pytest.mark.parametrize("message", [
        "You exceeded your current quota",
        "RESOURCE_EXHAUSTED: try later",
        "Insufficient balance",
        "billing hard limit reached",
        "HTTP 429",
        "Too Many Requests",
    ])
    def test_quota_messages(self, message):
        assert classify_error(Exception(message)) == ErrorKind.QUOTA

    @pytest.mark.parametrize("message", [
        "Connection reset by peer",
        "Request timed out",
        "502 Bad Gateway",
        "upstream returned HTTP 503",
        "DNS lookup failed",
        "service temporarily unavailable",
        "Anthropic API is overloaded",
    ])
    def test_transport_messages(self, message):
        assert classify_error(Exception(message)) == ErrorKind.TRANSPORT

    def test_exception_type_name_is_considered(self):
        assert classify_error(RateLimitError("slow down")) == ErrorKind.QUOTA

    def test_builtin_transport_types(self):
        assert classify_error(asyncio.TimeoutError()) == ErrorKind.TRANSPORT
        assert classify_error(ConnectionRefusedError()) == ErrorKind.TRANSPORT

    def test_unknown_fallback(self):
        assert classify_error(ValueError("bad payload shape")) == ErrorKind.UNKNOWN

    @pytest.mark.parametrize("message", [
        "This model's maximum context length exceeded",
        "max_tokens 1500 is larger than allowed",
        "field count 4290 out of range",
        "invalid value for seed: 5025",
    ])
    def test_numbers_and_words_inside_other_errors_do_not_match(self, message):
        assert classify_error(ValueError(message)) == ErrorKind.UNKNOWN

    def test_typed_provider_errors_keep_their_kind(self):
        assert classify_error(ProviderQuotaExceeded("a", "x")) == ErrorKind.QUOTA
        assert classify_error(ProviderTransportError("a", "x")) == ErrorKind.TRANSPORT
        assert classify_error(ProviderUnavailable("a", "no key")) == ErrorKind.UNKNOWN
        # typed kind wins over message heuristics
        assert classify_error(ProviderError("a", "quota exceeded")) == ErrorKind.UNKNOWN


class StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__("request failed")
        self.status_code = status_code


class TestStatusCodes:
    @pytest.mark.parametrize("status, kind", [
        (429, ErrorKind.QUOTA),
        (402, ErrorKind.QUOTA),
        (503, ErrorKind.TRANSPORT),
        (529, ErrorKind.TRANSPORT),
        (400, ErrorKind.UNKNOWN),
    ])
    def test_status_code_wins(self, status, kind):
        assert classify_error(StatusError(status)) == kind


class TestToProviderError:
    def test_wraps_with_kind(self):
        err = to_provider_error("openai", StatusError(429))
        assert isinstance(err, ProviderQuotaExceeded)
        assert err.provider == "openai"
        assert "StatusError" in str(err)

    def test_auth_failure_is_unavailable(self):
        assert isinstance(to_provider_error("openai", StatusError(401)), ProviderUnavailable)

    def test_unknown_stays_generic(self):
        err = to_provider_error("openai", ValueError("odd"))
        assert type(err) is ProviderError

    def test_provider_errors_pass_through(self):
        original = ProviderTransportError("x", "down")
        assert to_provider_error("y", original) is original

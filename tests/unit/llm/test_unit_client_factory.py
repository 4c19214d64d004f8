# tests/unit/llm/test_unit_client_factory.py — v1
"""Tests for llm/client_factory.py."""

from __future__ import annotations

import pytest

from llmpipe.llm.adapters.anthropic_adapter import AnthropicAdapter
from llmpipe.llm.adapters.ollama_adapter import OllamaAdapter
from llmpipe.llm.adapters.openai_adapter import OpenAIAdapter
from llmpipe.llm.client_factory import (
    UnsupportedProviderError,
    canonical_provider,
    create_llm_client,
)


class TestCanonicalProvider:
    def test_aliases(self):
        assert canonical_provider("Claude") == "anthropic"
        assert canonical_provider(" gemini ") == "google"
        assert canonical_provider("openai") == "openai"


class TestCreateLLMClient:
    def test_unknown_provider_raises(self):
        with pytest.raises(UnsupportedProviderError, match="Available"):
            create_llm_client("nope", "m")

    def test_openai_compatible_providers(self, settings):
        configured = settings.model_copy(update={"deepseek_api_key": "sk-ds"})
        client = create_llm_client("deepseek", "deepseek-chat", configured)
        assert isinstance(client, OpenAIAdapter)
        assert client.provider_name == "deepseek"
        assert client.is_configured
        assert client._base_url == configured.deepseek_base_url

    def test_missing_key_is_not_configured(self, settings):
        client = create_llm_client(
            "anthropic", "claude-x", settings.model_copy(update={"anthropic_api_key": ""}),
        )
        assert isinstance(client, AnthropicAdapter)
        assert client.provider_name == "anthropic"
        assert not client.is_configured

    def test_ollama_uses_base_url(self, settings):
        client = create_llm_client("ollama", "llama3", settings)
        assert isinstance(client, OllamaAdapter)
        assert client.is_configured

    def test_without_settings(self):
        client = create_llm_client("openai", "gpt-4o", api_key="sk-test")
        assert client.is_configured
        assert client.provider_name == "openai"

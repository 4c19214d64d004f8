# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from llmpipe.config.settings import Settings, load_settings
from llmpipe.core.errors import ConfigurationError


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestDefaults:
    def test_default_chain(self):
        s = _settings()
        assert s.provider_chain_list[0].startswith("deepseek")
        assert s.llm_timeout_seconds == 10.0
        assert s.timeout_for("ollama") == 60.0
        assert s.timeout_for("openai") == 10.0

    def test_excluded_tasks_list(self):
        s = _settings(semantic_cache_excluded_tasks=" Generate_Agent , code,")
        assert s.semantic_cache_excluded_tasks_list == ["generate_agent", "code"]

    def test_ttl_overrides_map(self):
        s = _settings(cache_ttl_overrides="volatile:300, code:3600")
        assert s.cache_ttl_overrides_map == {"volatile": 300, "code": 3600}

    def test_api_key_for(self):
        s = _settings(mistral_api_key="mk")
        assert s.api_key_for("mistral") == "mk"
        assert s.api_key_for("ollama") == ""


class TestEnvironment:
    def test_reads_env_vars(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER_CHAIN", "anthropic:claude-x")
        monkeypatch.setenv("CACHE_BACKEND", "sqlite")
        s = _settings()
        assert s.provider_chain_list == ["anthropic:claude-x"]
        assert s.cache_backend == "sqlite"

    def test_reads_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("LLM_TIMEOUT_SECONDS=3.5\nLOG_FORMAT=text\n", encoding="utf-8")
        s = load_settings(_env_file=str(env))
        assert s.llm_timeout_seconds == 3.5
        assert s.log_format == "text"


class TestValidation:
    def test_empty_chain_rejected(self):
        with pytest.raises(ConfigurationError, match="LLM_PROVIDER_CHAIN"):
            _settings(llm_provider_chain=" , ")

    def test_redis_requires_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            _settings(cache_backend="redis", cache_redis_url="")

    def test_threshold_range(self):
        with pytest.raises(ConfigurationError, match="SIMILARITY_THRESHOLD"):
            _settings(similarity_threshold=1.5)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigurationError, match="SIMILARITY_LEXICAL_WEIGHT"):
            _settings(similarity_lexical_weight=0.9)

    def test_malformed_overrides(self):
        with pytest.raises(ConfigurationError, match="name:value"):
            _settings(llm_timeout_overrides="ollama=60")

    def test_errors_are_combined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _settings(cache_backend="redis", similarity_threshold=-1)
        assert "CACHE_REDIS_URL" in str(exc_info.value)
        assert "SIMILARITY_THRESHOLD" in str(exc_info.value)

    def test_batch_concurrency(self):
        with pytest.raises(ValidationError):
            _settings(batch_concurrency=0)

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            _settings(cache_backend="mongo")

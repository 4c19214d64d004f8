# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider chain, timeouts, cache, recovery,
similarity and logging settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from llmpipe.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    # Ordered fallback chain, "name:model" pairs separated by commas.
    llm_provider_chain: str = (
        "deepseek:deepseek-chat,"
        "openai:gpt-4o,"
        "anthropic:claude-sonnet-4-20250514,"
        "google:gemini-1.5-pro,"
        "mistral:mistral-large-latest"
    )
    llm_default_temperature: float = 0.2
    llm_max_tokens: int = 4096

    # Per-provider call timeout (seconds), with "name:seconds" overrides
    llm_timeout_seconds: float = 10.0
    llm_timeout_overrides: str = "ollama:60"

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    deepseek_api_key: str = ""
    mistral_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    deepseek_base_url: str = "https://api.deepseek.com"
    mistral_base_url: str = "https://api.mistral.ai/v1"

    # === EMBEDDINGS (semantic cache) ===
    embedding_provider: Literal["none", "openai"] = "none"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.llmpipe/cache")
    cache_redis_url: str = ""
    cache_max_entries: int = 2048
    cache_ttl_seconds: int = 60 * 60 * 24 * 7
    cache_ttl_overrides: str = "volatile:300,code:3600"
    semantic_cache_enabled: bool = True
    semantic_cache_threshold: float = 0.92
    semantic_simhash_threshold: float = 0.9
    semantic_cache_excluded_tasks: str = "generate_agent,code"

    # === Recovery ===
    recovery_assisted_enabled: bool = True

    # === Similarity ===
    similarity_threshold: float = 0.15
    similarity_lexical_weight: float = 0.7
    similarity_domain_weight: float = 0.3
    similarity_description_weight: float = 0.8
    similarity_name_weight: float = 0.2

    # === Batch ===
    batch_concurrency: int = 4

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("batch_concurrency")
    @classmethod
    def validate_batch_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch_concurrency must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.provider_chain_list:
            errors.append("LLM_PROVIDER_CHAIN must name at least one provider")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        for name in (
            "semantic_cache_threshold",
            "semantic_simhash_threshold",
            "similarity_threshold",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name.upper()} must be within [0, 1]")

        if abs(self.similarity_lexical_weight + self.similarity_domain_weight - 1.0) > 1e-6:
            errors.append("SIMILARITY_LEXICAL_WEIGHT + SIMILARITY_DOMAIN_WEIGHT must equal 1")
        if abs(self.similarity_description_weight + self.similarity_name_weight - 1.0) > 1e-6:
            errors.append("SIMILARITY_DESCRIPTION_WEIGHT + SIMILARITY_NAME_WEIGHT must equal 1")

        try:
            self.timeout_overrides_map
            self.cache_ttl_overrides_map
        except ValueError as e:
            errors.append(str(e))

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def provider_chain_list(self) -> list[str]:
        """Parse comma-separated provider chain entries."""
        return [p.strip() for p in self.llm_provider_chain.split(",") if p.strip()]

    @property
    def timeout_overrides_map(self) -> dict[str, float]:
        """Parse 'name:seconds' timeout overrides."""
        return {k: float(v) for k, v in _parse_pairs(self.llm_timeout_overrides).items()}

    @property
    def cache_ttl_overrides_map(self) -> dict[str, int]:
        """Parse 'result_type:seconds' TTL overrides."""
        return {k: int(v) for k, v in _parse_pairs(self.cache_ttl_overrides).items()}

    @property
    def semantic_cache_excluded_tasks_list(self) -> list[str]:
        """Parse comma-separated task types that skip the semantic cache."""
        return [
            t.strip().lower()
            for t in self.semantic_cache_excluded_tasks.split(",")
            if t.strip()
        ]

    def timeout_for(self, provider: str) -> float:
        """Timeout in seconds for a provider name."""
        return self.timeout_overrides_map.get(provider, self.llm_timeout_seconds)

    def api_key_for(self, provider: str) -> str:
        """API key configured for a provider name ('' when none)."""
        return getattr(self, f"{provider}_api_key", "")


def _parse_pairs(value: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        if ":" not in item:
            raise ValueError(f"Invalid 'name:value' pair: {item!r}")
        key, raw = item.split(":", 1)
        pairs[key.strip().lower()] = raw.strip()
    return pairs


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-request config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

# src/llm/config.py — v2
"""Provider chain resolution.

The chain is read from LLM_PROVIDER_CHAIN as ordered "provider:model"
pairs, e.g. ``deepseek:deepseek-chat,openai:gpt-4o``. Entries without a
model fall back to the provider's default model. Per-provider timeouts come
from LLM_TIMEOUT_SECONDS and LLM_TIMEOUT_OVERRIDES.
"""

from __future__ import annotations

from dataclasses import dataclass

from llmpipe.config.settings import Settings
from llmpipe.llm.client_factory import canonical_provider

_DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "deepseek": "deepseek-chat",
    "mistral": "mistral-large-latest",
    "google": "gemini-1.5-pro",
    "ollama": "llama3",
}


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved provider:model slot in the fallback chain."""

    provider: str
    model: str
    timeout_s: float
    position: int

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' (or bare 'provider'). Returns None if empty."""
    value = value.strip()
    if not value:
        return None
    if ":" not in value:
        provider = canonical_provider(value)
        return (provider, _DEFAULT_MODELS.get(provider, ""))
    provider, model = value.split(":", 1)
    provider = canonical_provider(provider)
    return (provider, model.strip() or _DEFAULT_MODELS.get(provider, ""))


def resolve_chain(settings: Settings) -> list[LLMAssignment]:
    """Resolve the ordered provider chain from settings.

    Duplicate provider:model pairs keep their first position only.

    Returns:
        Ordered list of LLMAssignment, highest priority first.
    """
    chain: list[LLMAssignment] = []
    seen: set[str] = set()
    for entry in settings.provider_chain_list:
        parsed = _parse_assignment(entry)
        if parsed is None:
            continue
        provider, model = parsed
        key = f"{provider}:{model}"
        if key in seen:
            continue
        seen.add(key)
        chain.append(
            LLMAssignment(
                provider=provider,
                model=model,
                timeout_s=settings.timeout_for(provider),
                position=len(chain),
            )
        )
    return chain

# src/llm/client_factory.py — v4
"""Build one adapter per provider slot of the fallback chain.

deepseek and mistral speak the OpenAI wire format and share its adapter,
pointed at their own base URL.
"""

from __future__ import annotations

import importlib
import logging
from typing import NamedTuple

from llmpipe.config.settings import Settings
from llmpipe.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class _Route(NamedTuple):
    adapter: str
    base_url_setting: str | None = None
    keyed: bool = True


_ADAPTERS = "llmpipe.llm.adapters"

_ROUTES: dict[str, _Route] = {
    "anthropic": _Route(f"{_ADAPTERS}.anthropic_adapter.AnthropicAdapter"),
    "openai": _Route(f"{_ADAPTERS}.openai_adapter.OpenAIAdapter"),
    "deepseek": _Route(f"{_ADAPTERS}.openai_adapter.OpenAIAdapter", "deepseek_base_url"),
    "mistral": _Route(f"{_ADAPTERS}.openai_adapter.OpenAIAdapter", "mistral_base_url"),
    "google": _Route(f"{_ADAPTERS}.google_adapter.GoogleAdapter"),
    "ollama": _Route(f"{_ADAPTERS}.ollama_adapter.OllamaAdapter", "ollama_base_url", keyed=False),
}

_OPENAI_COMPATIBLE = frozenset({"deepseek", "mistral"})

_ALIASES: dict[str, str] = {
    "claude": "anthropic",
    "gemini": "google",
}


class UnsupportedProviderError(ValueError):
    """Provider name has no adapter."""


def canonical_provider(provider: str) -> str:
    name = provider.strip().lower()
    return _ALIASES.get(name, name)


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Adapter for ``provider`` serving ``model``.

    Credentials and base URLs come from ``settings`` unless passed in
    ``kwargs``. A missing key still yields a client; it reports
    ``is_configured == False`` and the router skips it.

    Raises:
        UnsupportedProviderError: unknown provider name.
    """
    name = canonical_provider(provider)
    route = _ROUTES.get(name)
    if route is None:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_ROUTES))}"
        )

    init_kwargs: dict[str, object] = {"model": model, **kwargs}
    if name in _OPENAI_COMPATIBLE:
        init_kwargs.setdefault("provider", name)
    if settings is not None:
        if route.keyed:
            init_kwargs.setdefault("api_key", settings.api_key_for(name))
        if route.base_url_setting:
            init_kwargs.setdefault("base_url", getattr(settings, route.base_url_setting))

    module_path, class_name = route.adapter.rsplit(".", 1)
    adapter_cls = getattr(importlib.import_module(module_path), class_name)
    logger.debug("Creating LLM client: provider=%s, model=%s", name, model)
    return adapter_cls(**init_kwargs)

"""Provider factory — registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from groundrag.config import Settings
from groundrag.providers.base import Provider

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Provider registry: (provider_key, module_path, class_name)
# ---------------------------------------------------------------------------

_PROVIDER_REGISTRY: list[tuple[str, str, str]] = [
    ("gemini", "groundrag.providers.gemini_provider", "GeminiProvider"),
    ("openrouter", "groundrag.providers.openrouter_provider", "OpenRouterProvider"),
    ("ollama", "groundrag.providers.ollama_provider", "OllamaProvider"),
]

# Singleton cache
_provider_cache: dict[str, Provider] = {}


def get_provider(
    provider: str = "gemini",
    **kwargs,
) -> Provider:
    """Get a provider by name.

    Args:
        provider: One of ``gemini``, ``openrouter``, ``ollama``.
        **kwargs: Passed to the provider constructor.

    Returns:
        A ``Provider`` instance.
    """
    key = provider.lower()

    if not kwargs and key in _provider_cache:
        return _provider_cache[key]

    for reg_key, module_path, cls_name in _PROVIDER_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            instance = cls(**kwargs)
            if not kwargs:
                _provider_cache[key] = instance
            return instance

    available = [k for k, _, _ in _PROVIDER_REGISTRY]
    raise ValueError(f"Unknown provider '{provider}'. Available: {available}")


def provider_kwargs(provider: str, settings: Settings) -> dict[str, Any]:
    """Constructor arguments for a registered provider, taken from settings."""
    key = provider.lower()
    timeout = settings.providers.request_timeout

    if key == "gemini":
        s = settings.gemini
        return {
            "api_key": s.api_key,
            "embed_model": s.embed_model,
            "llm_model": s.llm_model,
            "base_url": s.base_url,
            "timeout": timeout,
        }
    if key == "openrouter":
        s = settings.openrouter
        return {
            "api_key": s.api_key,
            "embed_model": s.embed_model,
            "llm_model": s.llm_model,
            "base_url": s.base_url,
            "timeout": timeout,
            "app_url": s.app_url,
            "app_title": s.app_title,
        }
    if key == "ollama":
        s = settings.ollama
        return {
            "embed_model": s.embed_model,
            "llm_model": s.llm_model,
            "base_url": s.base_url,
            "timeout": timeout,
        }
    return {}


def available_providers() -> list[str]:
    """Return names of registered providers."""
    return [k for k, _, _ in _PROVIDER_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _provider_cache.clear()

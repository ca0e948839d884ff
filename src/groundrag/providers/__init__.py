"""Model providers — Gemini, OpenRouter, Ollama — and the fallback coordinator."""

from groundrag.providers.base import GenerationOptions, Provider
from groundrag.providers.coordinator import (
    CallTrace,
    ProviderCoordinator,
    ProviderInfo,
    ProviderState,
    RetryPolicy,
)
from groundrag.providers.factory import available_providers, get_provider

__all__ = [
    "CallTrace",
    "GenerationOptions",
    "Provider",
    "ProviderCoordinator",
    "ProviderInfo",
    "ProviderState",
    "RetryPolicy",
    "available_providers",
    "get_provider",
]

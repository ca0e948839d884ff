"""Abstract base class for model providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from groundrag.errors import ProviderError, ProviderPermanentError, ProviderTransientError


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options. Providers ignore keys they do not support."""

    temperature: float = 0.1
    max_tokens: int = 1024
    top_p: float = 0.95
    top_k: int = 40


class Provider(ABC):
    """Interface for a remote model backend: embeddings plus text generation."""

    name: str = "provider"
    embed_model: str = ""
    llm_model: str = ""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: The text to embed.

        Returns:
            Embedding vector.
        """

    @abstractmethod
    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        """Generate a completion for a prompt.

        Args:
            prompt: The full prompt.
            options: Sampling options, defaults when omitted.

        Returns:
            Generated text.
        """

    @property
    def has_credentials(self) -> bool:
        """Whether the provider has what it needs to authenticate."""
        return True

    @classmethod
    def provider_name(cls) -> str:
        """Return human-readable provider name."""
        return cls.__name__


# ---------------------------------------------------------------------------
# Error translation shared by the httpx-based providers
# ---------------------------------------------------------------------------

_STATUS_MESSAGES = {
    401: "authentication failed, check the API key",
    403: "access denied, check the API key and permissions",
    404: "model or endpoint not found",
    429: "rate limit exceeded",
}


def translate_http_error(exc: Exception, provider: str, model: str) -> ProviderError:
    """Map an httpx failure onto the transient/permanent provider taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        detail = _STATUS_MESSAGES.get(status) or _response_detail(exc.response)
        message = f"{provider} ({model}): HTTP {status} {detail}"
        if status == 503:
            return ProviderTransientError(message, provider=provider, status_code=status)
        return ProviderPermanentError(message, provider=provider, status_code=status)

    if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout)):
        return ProviderTransientError(
            f"{provider}: service unavailable ({exc})", provider=provider
        )

    return ProviderPermanentError(f"{provider}: {exc}", provider=provider)


def _response_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message", error))
    return str(error or body)[:200]

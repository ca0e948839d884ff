"""Google Gemini provider — Generative Language REST API over httpx.

Requires ``GEMINI_API_KEY``, sent in the ``x-goog-api-key`` header so it never
shows up in request URLs or error messages.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from groundrag.errors import ProviderPermanentError
from groundrag.providers.base import GenerationOptions, Provider, translate_http_error

logger = logging.getLogger(__name__)

DEFAULT_EMBED_MODEL = "text-embedding-004"
DEFAULT_LLM_MODEL = "gemini-1.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(Provider):
    """Embed and generate via the Gemini REST API."""

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        embed_model: str = DEFAULT_EMBED_MODEL,
        llm_model: str = DEFAULT_LLM_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.embed_model = embed_model
        self.llm_model = llm_model
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        data = self._post(
            f"/models/{self.embed_model}:embedContent",
            {
                "model": f"models/{self.embed_model}",
                "content": {"parts": [{"text": text}]},
            },
            model=self.embed_model,
        )
        try:
            embedding = data["embedding"]["values"]
        except (KeyError, TypeError) as exc:
            raise ProviderPermanentError(
                "Invalid embedding response structure from Gemini API", provider=self.name
            ) from exc

        logger.info("Generated Gemini embedding with %d dimensions", len(embedding))
        return embedding

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        opts = options or GenerationOptions()
        data = self._post(
            f"/models/{self.llm_model}:generateContent",
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": opts.temperature,
                    "topK": opts.top_k,
                    "topP": opts.top_p,
                    "maxOutputTokens": opts.max_tokens,
                },
            },
            model=self.llm_model,
        )
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderPermanentError(
                "Invalid response structure from Gemini API", provider=self.name
            ) from exc

        if not text:
            raise ProviderPermanentError("Empty response from Gemini API", provider=self.name)

        logger.info("Generated response from Gemini (%s)", self.llm_model)
        return text

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _post(self, path: str, payload: dict[str, Any], model: str) -> dict[str, Any]:
        if not self.api_key:
            raise ProviderPermanentError("GEMINI_API_KEY is required", provider=self.name)

        try:
            resp = self._client.post(
                path, headers={"x-goog-api-key": self.api_key}, json=payload,
            )
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            error = translate_http_error(exc, self.name, model)
            logger.error("Gemini request failed: %s", error)
            raise error from exc

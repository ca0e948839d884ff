"""Ollama provider — local-first, no API keys.

Serves both embeddings (``nomic-embed-text``, ``mxbai-embed-large``, ...) and
generation (Llama, Mistral, DeepSeek, ...) from one local server.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from groundrag.errors import ProviderPermanentError
from groundrag.providers.base import GenerationOptions, Provider, translate_http_error

logger = logging.getLogger(__name__)

DEFAULT_EMBED_MODEL = "nomic-embed-text"
DEFAULT_LLM_MODEL = "llama3.1:8b"
DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider(Provider):
    """Embed and generate via a local Ollama server."""

    name = "ollama"

    def __init__(
        self,
        embed_model: str = DEFAULT_EMBED_MODEL,
        llm_model: str = DEFAULT_LLM_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.embed_model = embed_model
        self.llm_model = llm_model
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def embed(self, text: str) -> list[float]:
        data = self._post("/api/embeddings", {"model": self.embed_model, "prompt": text}, self.embed_model)
        embedding = data.get("embedding")
        if not embedding:
            raise ProviderPermanentError("Ollama returned no embedding", provider=self.name)
        return embedding

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        opts = options or GenerationOptions()
        payload = {
            "model": self.llm_model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": opts.temperature,
                "num_predict": opts.max_tokens,
                "top_p": opts.top_p,
                "top_k": opts.top_k,
            },
        }
        data = self._post("/api/generate", payload, self.llm_model)
        text = data.get("response")
        if not text:
            raise ProviderPermanentError("Empty response from Ollama", provider=self.name)
        return text

    def _post(self, path: str, payload: dict[str, Any], model: str) -> dict[str, Any]:
        try:
            resp = self._client.post(path, json=payload)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPError as exc:
            raise translate_http_error(exc, self.name, model) from exc

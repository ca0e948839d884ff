"""OpenRouter provider — OpenAI-compatible chat and embeddings endpoints.

Requires the ``openai`` extra and ``OPENROUTER_API_KEY``.
"""

from __future__ import annotations

import logging
from typing import Any

from groundrag.errors import ProviderError, ProviderPermanentError, ProviderTransientError
from groundrag.providers.base import GenerationOptions, Provider

logger = logging.getLogger(__name__)

DEFAULT_EMBED_MODEL = "text-embedding-3-large"
DEFAULT_LLM_MODEL = "meta-llama/llama-3.1-8b-instruct:free"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterProvider(Provider):
    """Embed and generate via OpenRouter using the OpenAI client."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str | None = None,
        embed_model: str = DEFAULT_EMBED_MODEL,
        llm_model: str = DEFAULT_LLM_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        app_url: str | None = None,
        app_title: str | None = None,
    ):
        try:
            import openai
        except ImportError as exc:
            raise ImportError(
                "openai package required: pip install groundrag[openai]"
            ) from exc

        self._openai = openai
        self.api_key = api_key
        self.embed_model = embed_model
        self.llm_model = llm_model
        self.base_url = base_url
        self.timeout = timeout

        self._headers: dict[str, str] = {}
        if app_url:
            self._headers["HTTP-Referer"] = app_url
        if app_title:
            self._headers["X-Title"] = app_title

        self._client: Any = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        client = self._get_client()
        try:
            resp = client.embeddings.create(model=self.embed_model, input=text)
        except self._openai.OpenAIError as exc:
            raise self._translate(exc, self.embed_model) from exc

        if not resp.data:
            raise ProviderPermanentError(
                "Invalid OpenRouter embedding response structure", provider=self.name
            )

        embedding = resp.data[0].embedding
        logger.info("Generated OpenRouter embedding with %d dimensions", len(embedding))
        return embedding

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        opts = options or GenerationOptions()
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.llm_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=opts.temperature,
                max_tokens=opts.max_tokens,
                top_p=opts.top_p,
            )
        except self._openai.OpenAIError as exc:
            raise self._translate(exc, self.llm_model) from exc

        if not response.choices:
            raise ProviderPermanentError(
                "Invalid OpenRouter chat response structure", provider=self.name
            )

        text = response.choices[0].message.content
        if not text:
            raise ProviderPermanentError("Empty response from OpenRouter", provider=self.name)

        logger.info("Generated response from OpenRouter (%s)", self.llm_model)
        return text

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _get_client(self) -> Any:
        if not self.api_key:
            raise ProviderPermanentError("OPENROUTER_API_KEY is required", provider=self.name)
        if self._client is None:
            self._client = self._openai.OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers=self._headers or None,
            )
        return self._client

    def _translate(self, exc: Exception, model: str) -> ProviderError:
        if isinstance(exc, self._openai.APIStatusError):
            status = exc.status_code
            message = f"{self.name} ({model}): HTTP {status} {exc.message}"
            if status == 503:
                return ProviderTransientError(message, provider=self.name, status_code=status)
            return ProviderPermanentError(message, provider=self.name, status_code=status)
        if isinstance(exc, self._openai.APIConnectionError):
            return ProviderTransientError(
                f"{self.name}: service unavailable ({exc})", provider=self.name
            )
        return ProviderPermanentError(f"{self.name}: {exc}", provider=self.name)

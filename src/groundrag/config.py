"""Application settings loaded from YAML with environment variable overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class ProvidersSettings(BaseModel):
    preferred: str = "gemini"
    order: list[str] = Field(default_factory=lambda: ["gemini", "openrouter"])
    max_retries: int = 3
    initial_backoff_ms: int = 1000
    backoff_factor: float = 2.0
    max_elapsed_seconds: float | None = None
    request_timeout: float = 30.0


class GeminiSettings(BaseModel):
    api_key: str | None = None
    embed_model: str = "text-embedding-004"
    llm_model: str = "gemini-1.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"


class OpenRouterSettings(BaseModel):
    api_key: str | None = None
    embed_model: str = "text-embedding-3-large"
    llm_model: str = "meta-llama/llama-3.1-8b-instruct:free"
    base_url: str = "https://openrouter.ai/api/v1"
    app_url: str | None = None
    app_title: str | None = None


class OllamaSettings(BaseModel):
    embed_model: str = "nomic-embed-text"
    llm_model: str = "llama3.1:8b"
    base_url: str = "http://localhost:11434"


class VectorStoreSettings(BaseModel):
    backend: str = "pinecone"
    dimension: int | None = None
    pinecone_api_key: str | None = None
    pinecone_index: str | None = None
    pinecone_host: str | None = None
    pinecone_namespace: str | None = None
    qdrant_url: str | None = None
    qdrant_api_key: str | None = None
    qdrant_collection: str = "knowledge_base"
    faiss_path: str = "local_data/vectorstore"


class RetrievalSettings(BaseModel):
    top_k: int = 5
    similarity_threshold: float = 0.75


class GenerationSettings(BaseModel):
    temperature: float = 0.1
    max_tokens: int = 1024
    top_p: float = 0.95
    top_k: int = 40


class SanitizerSettings(BaseModel):
    min_sentence_chars: int = 10
    min_word_chars: int = 3
    overlap_threshold: float = 0.3


class MessageSettings(BaseModel):
    fallback: str = "Sorry, I don't have information about that in the knowledge base."
    error: str = "I'm experiencing technical difficulties. Please try again later."


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseModel):
    providers: ProvidersSettings = Field(default_factory=ProvidersSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    vectorstore: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    sanitizer: SanitizerSettings = Field(default_factory=SanitizerSettings)
    messages: MessageSettings = Field(default_factory=MessageSettings)


# env var -> (section, field)
_ENV_OVERRIDES: list[tuple[str, str, str]] = [
    ("PROVIDER", "providers", "preferred"),
    ("MAX_RETRIES", "providers", "max_retries"),
    ("GEMINI_API_KEY", "gemini", "api_key"),
    ("GEMINI_EMBED_MODEL", "gemini", "embed_model"),
    ("GEMINI_LLM_MODEL", "gemini", "llm_model"),
    ("OPENROUTER_API_KEY", "openrouter", "api_key"),
    ("OPENROUTER_EMBED_MODEL", "openrouter", "embed_model"),
    ("OPENROUTER_LLM_MODEL", "openrouter", "llm_model"),
    ("OLLAMA_BASE_URL", "ollama", "base_url"),
    ("VECTOR_BACKEND", "vectorstore", "backend"),
    ("PINECONE_API_KEY", "vectorstore", "pinecone_api_key"),
    ("PINECONE_INDEX", "vectorstore", "pinecone_index"),
    ("PINECONE_HOST", "vectorstore", "pinecone_host"),
    ("TOPK", "retrieval", "top_k"),
    ("SIMILARITY_THRESHOLD", "retrieval", "similarity_threshold"),
]


def _find_settings_file() -> Path | None:
    """Walk up from cwd looking for settings.yaml."""
    profile = os.getenv("GROUNDRAG_PROFILE", "")
    names = [f"settings-{profile}.yaml", "settings.yaml"] if profile else ["settings.yaml"]

    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        for name in names:
            candidate = parent / name
            if candidate.exists():
                return candidate
    return None


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Overlay non-empty environment variables onto the raw YAML mapping."""
    for env_name, section, key in _ENV_OVERRIDES:
        value = os.getenv(env_name)
        if value:
            section_raw = raw.get(section) or {}
            section_raw[key] = value
            raw[section] = section_raw
    return raw


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML file, falling back to defaults.

    Environment variables always win over the file.
    """
    settings_path = Path(path) if path else _find_settings_file()

    raw: dict[str, Any] = {}
    if settings_path is not None:
        with open(settings_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

    return Settings(**_apply_env_overrides(raw))

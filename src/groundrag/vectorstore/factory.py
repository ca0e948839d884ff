"""Vector index factory — registry, lazy import, singleton cache."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from groundrag.config import Settings
from groundrag.vectorstore.base import VectorIndex

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Store registry: (store_key, module_path, class_name)
# ---------------------------------------------------------------------------

_STORE_REGISTRY: list[tuple[str, str, str]] = [
    ("pinecone", "groundrag.vectorstore.pinecone_store", "PineconeIndex"),
    ("qdrant", "groundrag.vectorstore.qdrant_store", "QdrantIndex"),
    ("faiss", "groundrag.vectorstore.faiss_store", "FAISSIndex"),
]

# Singleton cache
_store_cache: dict[str, VectorIndex] = {}


def get_vector_store(
    provider: str = "pinecone",
    **kwargs,
) -> VectorIndex:
    """Get a vector index by name.

    Args:
        provider: One of ``pinecone``, ``qdrant``, ``faiss``.
        **kwargs: Passed to the index constructor.

    Returns:
        A ``VectorIndex`` instance.
    """
    key = provider.lower()

    if not kwargs and key in _store_cache:
        return _store_cache[key]

    for reg_key, module_path, cls_name in _STORE_REGISTRY:
        if reg_key == key:
            mod = importlib.import_module(module_path)
            cls = getattr(mod, cls_name)
            instance = cls(**kwargs)
            if not kwargs:
                _store_cache[key] = instance
            return instance

    available = [k for k, _, _ in _STORE_REGISTRY]
    raise ValueError(f"Unknown vector store '{provider}'. Available: {available}")


def store_kwargs(settings: Settings) -> dict[str, Any]:
    """Constructor arguments for the configured backend."""
    s = settings.vectorstore
    key = s.backend.lower()

    if key == "pinecone":
        return {
            "api_key": s.pinecone_api_key,
            "index_name": s.pinecone_index,
            "host": s.pinecone_host,
            "namespace": s.pinecone_namespace,
            "dimension": s.dimension,
            "timeout": settings.providers.request_timeout,
        }
    if key == "qdrant":
        return {
            "collection_name": s.qdrant_collection,
            "url": s.qdrant_url,
            "api_key": s.qdrant_api_key,
            "dimension": s.dimension,
        }
    if key == "faiss":
        return {"dimension": s.dimension, "path": s.faiss_path}
    return {}


def available_stores() -> list[str]:
    """Return names of registered vector stores."""
    return [k for k, _, _ in _STORE_REGISTRY]


def clear_cache() -> None:
    """Clear singleton cache (for testing)."""
    _store_cache.clear()

"""Qdrant index — production-grade, Qdrant Cloud or self-hosted.

Requires the ``qdrant`` extra. Point payloads are returned as match metadata.
"""

from __future__ import annotations

import logging
from typing import Any

from groundrag.errors import IndexUnavailableError
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.schemas import IndexMatch

logger = logging.getLogger(__name__)


class QdrantIndex(VectorIndex):
    """Qdrant collection queried by vector."""

    def __init__(
        self,
        collection_name: str = "knowledge_base",
        url: str | None = None,
        api_key: str | None = None,
        path: str | None = None,
        dimension: int | None = None,
        client: Any = None,
    ):
        try:
            from qdrant_client import QdrantClient
        except ImportError as exc:
            raise ImportError(
                "qdrant-client required: pip install groundrag[qdrant]"
            ) from exc

        self._collection_name = collection_name
        self._dimension = dimension

        if client is not None:
            self._client = client
        elif url:
            self._client = QdrantClient(url=url, api_key=api_key)
        elif path:
            self._client = QdrantClient(path=path)
        else:
            # In-memory for testing
            self._client = QdrantClient(":memory:")

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def query(self, vector: list[float], top_k: int = 5) -> list[IndexMatch]:
        try:
            response = self._client.query_points(
                collection_name=self._collection_name,
                query=vector,
                limit=top_k,
                with_payload=True,
            )
        except Exception as exc:
            logger.error("Error querying Qdrant collection '%s': %s", self._collection_name, exc)
            raise IndexUnavailableError(f"Qdrant query failed: {exc}") from exc

        matches = [
            IndexMatch(
                id=str(point.id),
                score=point.score if point.score is not None else 0.0,
                metadata=dict(point.payload or {}),
            )
            for point in response.points
        ]
        logger.info("Qdrant query returned %d matches", len(matches))
        return matches

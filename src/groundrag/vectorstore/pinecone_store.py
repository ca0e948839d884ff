"""Pinecone index — REST data plane over httpx.

The index host is resolved once through the control plane (``describe
index``) unless given explicitly. Resolution doubles as the connection check:
a missing index or a rejected key surfaces as ``IndexUnavailableError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from groundrag.errors import IndexUnavailableError
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.schemas import IndexMatch

logger = logging.getLogger(__name__)

CONTROL_PLANE_URL = "https://api.pinecone.io"
API_VERSION = "2024-07"


class PineconeIndex(VectorIndex):
    """Pinecone serverless/pod index queried by vector."""

    def __init__(
        self,
        api_key: str | None = None,
        index_name: str | None = None,
        host: str | None = None,
        namespace: str | None = None,
        dimension: int | None = None,
        timeout: float = 30.0,
        control_plane_url: str = CONTROL_PLANE_URL,
        transport: httpx.BaseTransport | None = None,
    ):
        self._api_key = api_key
        self._index_name = index_name
        self._host = _with_scheme(host) if host else None
        self._namespace = namespace
        self._dimension = dimension
        self._control_plane_url = control_plane_url.rstrip("/")
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Api-Key": api_key or "", "X-Pinecone-API-Version": API_VERSION},
        )

    @property
    def dimension(self) -> int | None:
        return self._dimension

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def connect(self) -> str:
        """Resolve and return the data-plane host for the configured index."""
        if self._host:
            return self._host

        if not self._api_key:
            raise IndexUnavailableError("PINECONE_API_KEY is required")
        if not self._index_name:
            raise IndexUnavailableError("PINECONE_INDEX is required")

        try:
            resp = self._client.get(f"{self._control_plane_url}/indexes/{self._index_name}")
            resp.raise_for_status()
            description = resp.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise IndexUnavailableError(
                    f"Index '{self._index_name}' not found"
                ) from exc
            raise IndexUnavailableError(
                f"Failed to connect to Pinecone (HTTP {exc.response.status_code}). "
                "Check the API key and network connection."
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise IndexUnavailableError(f"Failed to connect to Pinecone: {exc}") from exc

        host = description.get("host")
        if not host:
            raise IndexUnavailableError(f"Index '{self._index_name}' has no host yet")

        self._host = _with_scheme(host)
        if self._dimension is None:
            self._dimension = description.get("dimension")
        logger.info("Pinecone index '%s' resolved to %s", self._index_name, self._host)
        return self._host

    def query(self, vector: list[float], top_k: int = 5) -> list[IndexMatch]:
        host = self.connect()

        payload: dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
        }
        if self._namespace:
            payload["namespace"] = self._namespace

        try:
            resp = self._client.post(f"{host}/query", json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error querying Pinecone: %s", exc)
            raise IndexUnavailableError(f"Pinecone query failed: {exc}") from exc

        matches = [
            IndexMatch(
                id=str(m.get("id", "")),
                score=float(m.get("score") or 0.0),
                metadata=m.get("metadata") or {},
            )
            for m in data.get("matches") or []
        ]
        logger.info("Pinecone query returned %d matches", len(matches))
        return matches


def _with_scheme(host: str) -> str:
    host = host.rstrip("/")
    return host if host.startswith(("http://", "https://")) else f"https://{host}"

"""FAISS index — local, zero infrastructure.

Flat inner-product index over L2-normalized vectors (cosine similarity),
with a parallel metadata dict. Persisted as ``index.faiss`` plus
``metadata.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np

from groundrag.errors import IndexUnavailableError
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.schemas import IndexMatch, IndexRecord

logger = logging.getLogger(__name__)


class FAISSIndex(VectorIndex):
    """FAISS-backed local vector index."""

    def __init__(self, dimension: int | None = None, path: str | None = None):
        try:
            import faiss
        except ImportError as exc:
            raise ImportError(
                "faiss-cpu required: pip install groundrag[faiss]"
            ) from exc

        self._faiss = faiss
        self._index = None
        self._dimension = dimension
        self._records: dict[int, dict] = {}  # int id -> {id, metadata}

        if path is not None:
            self.load(path)
        elif dimension is not None:
            self._index = faiss.IndexFlatIP(dimension)

    @property
    def dimension(self) -> int | None:
        return self._dimension

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def query(self, vector: list[float], top_k: int = 5) -> list[IndexMatch]:
        if self._index is None:
            raise IndexUnavailableError("FAISS index not loaded")
        if self._index.ntotal == 0:
            return []

        query_vec = np.array([vector], dtype=np.float32)
        self._faiss.normalize_L2(query_vec)

        scores, indices = self._index.search(query_vec, min(top_k, self._index.ntotal))

        matches: list[IndexMatch] = []
        for score, idx in zip(scores[0], indices[0], strict=True):
            record = self._records.get(int(idx))
            if idx == -1 or record is None:
                continue
            matches.append(IndexMatch(
                id=record["id"],
                score=float(score),
                metadata=record["metadata"],
            ))
        return matches

    def add(self, records: list[IndexRecord]) -> int:
        """Append records to the in-memory index."""
        if not records:
            return 0
        if self._index is None:
            self._dimension = len(records[0].embedding)
            self._index = self._faiss.IndexFlatIP(self._dimension)

        vectors = np.array([r.embedding for r in records], dtype=np.float32)
        # L2-normalize for cosine similarity via inner product
        self._faiss.normalize_L2(vectors)

        start_id = self._index.ntotal
        self._index.add(vectors)
        for i, record in enumerate(records):
            self._records[start_id + i] = {"id": record.id, "metadata": dict(record.metadata)}

        return len(records)

    def save(self, path: str) -> None:
        """Save FAISS index and metadata to disk."""
        if self._index is None:
            raise IndexUnavailableError("Nothing to save: FAISS index is empty")

        p = Path(path)
        p.mkdir(parents=True, exist_ok=True)
        self._faiss.write_index(self._index, str(p / "index.faiss"))

        serializable = {str(int_id): record for int_id, record in self._records.items()}
        with open(p / "metadata.json", "w", encoding="utf-8") as f:
            json.dump({"records": serializable}, f)

        logger.info("FAISSIndex saved to %s (%d records)", path, self._index.ntotal)

    def load(self, path: str) -> None:
        """Load FAISS index and metadata from disk."""
        p = Path(path)
        try:
            self._index = self._faiss.read_index(str(p / "index.faiss"))
            with open(p / "metadata.json", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, RuntimeError, ValueError) as exc:
            raise IndexUnavailableError(f"Cannot load FAISS index from {path}: {exc}") from exc

        self._dimension = self._index.d
        self._records = {int(k): v for k, v in data.get("records", {}).items()}
        logger.info("FAISSIndex loaded from %s (%d records)", path, self._index.ntotal)

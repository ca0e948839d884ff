"""Abstract base class for vector indexes."""

from __future__ import annotations

from abc import ABC, abstractmethod

from groundrag.vectorstore.schemas import IndexMatch


class VectorIndex(ABC):
    """Query-by-vector interface to a pre-populated index."""

    @abstractmethod
    def query(self, vector: list[float], top_k: int = 5) -> list[IndexMatch]:
        """Search for the nearest chunks.

        Args:
            vector: The query embedding.
            top_k: Maximum results to return.

        Returns:
            List of ``IndexMatch`` sorted by score (highest first).
        """

    def connect(self) -> None:
        """Resolve the backend connection. No-op for indexes that need none."""

    @property
    def dimension(self) -> int | None:
        """Index dimensionality, ``None`` when the backend does not report it."""
        return None

    @classmethod
    def store_name(cls) -> str:
        """Return human-readable store name."""
        return cls.__name__

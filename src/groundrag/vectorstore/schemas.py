"""Data models for vector index operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class IndexMatch:
    """A single raw hit from the vector index.

    ``metadata`` is forwarded unchanged from ingestion. It is expected (not
    enforced) to carry ``text``, ``source`` and optional section/page/line keys.
    """

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexRecord:
    """A chunk with its embedding, for backends that can be loaded locally."""

    id: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)

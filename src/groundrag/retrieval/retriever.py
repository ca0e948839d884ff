"""Vector retriever — validate the query vector, search the index, map metadata."""

from __future__ import annotations

import logging
import numbers
from collections.abc import Mapping
from typing import Any

from groundrag.errors import IndexUnavailableError, InvalidQueryVectorError
from groundrag.retrieval.schemas import LineRange, Match, RetrievalResult
from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.schemas import IndexMatch

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class VectorRetriever:
    """Runs similarity queries and turns raw index hits into ``Match`` objects.

    Index failures are surfaced as ``IndexUnavailableError`` and never retried
    here: a vector query is an idempotent read with no fallback target.
    """

    def __init__(self, index: VectorIndex, default_top_k: int = DEFAULT_TOP_K):
        self.index = index
        self.default_top_k = default_top_k

    def query(self, vector: list[float], top_k: int | None = None) -> RetrievalResult:
        """Search the index.

        Args:
            vector: Query embedding; non-empty, numeric, index dimensionality.
            top_k: Positive result count, ``default_top_k`` when omitted.

        Returns:
            A ``RetrievalResult`` sorted by descending score.
        """
        k = self.default_top_k if top_k is None else top_k
        self._validate(vector, k)

        try:
            # Resolves the index dimension for backends that learn it on connect
            self.index.connect()
        except IndexUnavailableError:
            raise
        except Exception as exc:
            logger.error("Vector index connection failed: %s", exc)
            raise IndexUnavailableError(f"Vector index connection failed: {exc}") from exc
        self._check_dimension(vector)

        try:
            raw = self.index.query(list(vector), top_k=k)
        except IndexUnavailableError:
            raise
        except Exception as exc:
            logger.error("Vector index query failed: %s", exc)
            raise IndexUnavailableError(f"Vector index query failed: {exc}") from exc

        matches = sorted((to_match(m) for m in raw), key=lambda m: m.score, reverse=True)

        if matches:
            logger.info(
                "Retrieved %d matches (top score %.4f)", len(matches), matches[0].score
            )
        else:
            logger.info("Retrieved 0 matches")

        return RetrievalResult(matches=matches)

    def _validate(self, vector: list[float], top_k: int) -> None:
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
            raise InvalidQueryVectorError(f"top_k must be a positive integer, got {top_k!r}")
        if len(vector) == 0:
            raise InvalidQueryVectorError("Query vector is empty")
        if any(isinstance(v, bool) or not isinstance(v, numbers.Real) for v in vector):
            raise InvalidQueryVectorError("Query vector must contain only numbers")

    def _check_dimension(self, vector: list[float]) -> None:
        expected = self.index.dimension
        if expected is not None and len(vector) != expected:
            raise InvalidQueryVectorError(
                f"Query vector has {len(vector)} dimensions, index expects {expected}"
            )


# ---------------------------------------------------------------------------
# Metadata mapping
# ---------------------------------------------------------------------------


def to_match(hit: IndexMatch) -> Match:
    """Map an index hit's ingestion metadata onto a ``Match``."""
    meta = hit.metadata or {}
    page = meta.get("pageId") or meta.get("notion_page_id") or meta.get("page_reference")

    return Match(
        id=hit.id,
        score=hit.score,
        text=str(meta.get("text") or ""),
        source=str(meta.get("source") or "Unknown Source"),
        section_title=meta.get("section_title") or None,
        page_reference=str(page) if page else None,
        line_range=_line_range(meta),
    )


def _line_range(meta: Mapping[str, Any]) -> LineRange | None:
    start = meta.get("loc.lines.from")
    end = meta.get("loc.lines.to")

    loc = meta.get("loc")
    if isinstance(loc, Mapping) and isinstance(loc.get("lines"), Mapping):
        start = loc["lines"].get("from", start)
        end = loc["lines"].get("to", end)

    if start is None and end is None:
        return None
    return LineRange(
        start=_as_line(start),
        end=_as_line(end),
    )


def _as_line(value: Any) -> int | str:
    if value is None:
        return "unknown"
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value

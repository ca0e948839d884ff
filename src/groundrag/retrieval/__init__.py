"""Retrieval — similarity search against the vector index."""

from groundrag.retrieval.retriever import VectorRetriever
from groundrag.retrieval.schemas import LineRange, Match, RetrievalResult

__all__ = ["LineRange", "Match", "RetrievalResult", "VectorRetriever"]

"""Vector index backends — Pinecone, Qdrant and FAISS."""

from groundrag.vectorstore.base import VectorIndex
from groundrag.vectorstore.factory import available_stores, get_vector_store
from groundrag.vectorstore.schemas import IndexMatch, IndexRecord

__all__ = [
    "IndexMatch",
    "IndexRecord",
    "VectorIndex",
    "available_stores",
    "get_vector_store",
]

"""
Store — the vector-store side of ingestion.

Public surface
--------------
- :class:`VectorStoreBase` — abstract backend (subclass for Pinecone, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`Upserter`, :func:`namespace_for_key` — namespace-scoped writes.
"""

from pdf_indexer.store.base import VectorStoreBase
from pdf_indexer.store.upserter import Upserter, namespace_for_key

__all__ = [
    "ChromaVectorStore",
    "Upserter",
    "VectorStoreBase",
    "namespace_for_key",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from pdf_indexer.store.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Abstract base class for vector-store backends.

Adding a new backend (Pinecone, Weaviate, Qdrant) only requires
subclassing :class:`VectorStoreBase` and implementing ``upsert``.  The
ingestion pipeline is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from pdf_indexer.ingestion.models import VectorRecord


class VectorStoreBase(ABC):
    """Backend-agnostic, namespace-partitioned vector-store writer.

    Parameters
    ----------
    index_name:
        Logical name of the index / collection set holding every namespace.
    """

    def __init__(self, index_name: str) -> None:
        self.index_name = index_name

    @abstractmethod
    def upsert(self, namespace: str, records: Sequence[VectorRecord]) -> None:
        """Insert *records* into *namespace*, overwriting ids that already exist.

        Implementations raise :class:`~pdf_indexer.errors.BackendWriteError`
        when the backend rejects the batch.
        """
        ...


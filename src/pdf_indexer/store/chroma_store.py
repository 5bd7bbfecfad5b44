"""Chroma implementation of the vector-store abstraction.

Each namespace maps to its own collection, ``<index_name>-<namespace>``,
so a document's records can be listed or dropped independently.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import chromadb
from chromadb.errors import ChromaError

from pdf_indexer.errors import BackendWriteError
from pdf_indexer.ingestion.models import VectorRecord
from pdf_indexer.store.base import VectorStoreBase

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    client:
        A ``chromadb`` client (``HttpClient`` in production, any stand-in in tests).
    index_name:
        Prefix shared by every namespace collection.
    distance_metric:
        ``cosine`` | ``l2`` | ``ip``, applied when a collection is created.
    """

    def __init__(self, client: Any, index_name: str, *, distance_metric: str = "cosine") -> None:
        super().__init__(index_name)
        self._client = client
        self.distance_metric = distance_metric

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        index_name: str,
        *,
        api_key: str = "",
        distance_metric: str = "cosine",
    ) -> ChromaVectorStore:
        """Build a store around a ``chromadb.HttpClient``."""
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        client = chromadb.HttpClient(host=host, port=port, headers=headers)
        return cls(client, index_name, distance_metric=distance_metric)

    def collection_name(self, namespace: str) -> str:
        return f"{self.index_name}-{namespace}"

    # -- VectorStoreBase overrides --------------------------------------------

    def upsert(self, namespace: str, records: Sequence[VectorRecord]) -> None:
        name = self.collection_name(namespace)
        try:
            collection = self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": self.distance_metric},
            )
            collection.upsert(
                ids=[r.id for r in records],
                embeddings=[r.values for r in records],
                metadatas=[r.metadata_dict() for r in records],
            )
        except ChromaError as exc:
            # Server and client share these types; code() mirrors the HTTP status.
            code = exc.code()
            retryable = code == 429 or code >= 500
            if retryable:
                logger.warning("Chroma upsert to %r failed with %d", name, code)
            raise BackendWriteError(
                f"Chroma rejected batch for {name!r}: {type(exc).__name__}: {exc}",
                retryable=retryable,
            ) from exc
        except (ValueError, TypeError) as exc:
            # Schema / dimension validation; resending the same batch cannot help.
            raise BackendWriteError(f"Chroma rejected batch for {name!r}: {exc}") from exc
        except Exception as exc:
            logger.warning("Chroma upsert to %r failed", name, exc_info=True)
            raise BackendWriteError(
                f"Chroma upsert to {name!r} failed: {type(exc).__name__}", retryable=True
            ) from exc


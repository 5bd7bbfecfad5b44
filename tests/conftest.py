"""Shared pytest configuration, fakes and fixtures."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import pytest

from pdf_indexer.config import Settings
from pdf_indexer.errors import BackendWriteError, EmbeddingBackendError, ObjectNotFoundError
from pdf_indexer.ingestion.loader import ObjectStoreBase
from pdf_indexer.ingestion.models import VectorRecord
from pdf_indexer.store.base import VectorStoreBase


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes for the external collaborators ────────────────────────────────


class FakeEmbeddingBackend:
    """Deterministic in-memory embedding backend.

    Vectors are derived from a SHA-256 of the text, so equal texts embed equally.
    """

    def __init__(self, dim: int = 4, *, dimension: int | None = None) -> None:
        self.dim = dim
        self._dimension = dimension
        self.calls: list[str] = []
        self.fail_times = 0
        self.payload: Mapping[str, Any] | None = None
        self.delay_for: Callable[[str], float] | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def dimension(self) -> int | None:
        return self._dimension

    @staticmethod
    def vector_for(text: str, dim: int = 4) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 255 for b in digest[:dim]]

    async def create_embedding(self, text: str) -> Mapping[str, Any]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay_for is not None:
                await asyncio.sleep(self.delay_for(text))
            if self.fail_times > 0:
                self.fail_times -= 1
                raise EmbeddingBackendError("HTTP 503", retryable=True)
            if self.payload is not None:
                return self.payload
            return {"data": [{"embedding": self.vector_for(text, self.dim)}]}
        finally:
            self.in_flight -= 1


class FakeVectorStore(VectorStoreBase):
    """In-memory namespace → {id: record} store that logs every batch."""

    def __init__(self) -> None:
        super().__init__("test-index")
        self.namespaces: dict[str, dict[str, VectorRecord]] = {}
        self.upserts: list[tuple[str, list[str]]] = []
        self.fail_times = 0

    def upsert(self, namespace: str, records: Sequence[VectorRecord]) -> None:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise BackendWriteError("connection reset", retryable=True)
        self.upserts.append((namespace, [r.id for r in records]))
        bucket = self.namespaces.setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record


class FakeObjectStore(ObjectStoreBase):
    """Maps keys to placeholder paths and records releases."""

    def __init__(self, keys: Sequence[str] = ()) -> None:
        self.keys = set(keys)
        self.fetched: list[str] = []
        self.released: list[Path] = []

    def fetch(self, key: str) -> Path:
        self.fetched.append(key)
        if key not in self.keys:
            raise ObjectNotFoundError(f"No object stored under {key!r}")
        return Path("/fake") / key

    def release(self, path: Path) -> None:
        self.released.append(path)


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        embedding_dim=4,
        chunk_size=50,
        chunk_overlap=10,
        max_retries=2,
        retry_backoff_seconds=0,
        request_timeout=5.0,
        max_concurrent_embeddings=2,
    )


@pytest.fixture()
def fake_backend() -> FakeEmbeddingBackend:
    return FakeEmbeddingBackend()


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()

"""Ingestion pipeline — storage key in, namespace of vectors out.

Usage::

    from pdf_indexer.config import settings
    from pdf_indexer.pipeline import build_pipeline

    pipeline = build_pipeline(settings)
    result = asyncio.run(pipeline.ingest("uploads/report.pdf"))
    print(result.namespace, result.records_upserted)

Stages run strictly in order::

    fetched → parsed → chunked → embedded → records_built → upserted

Records are written only once every embedding of the document succeeded;
any failure raises :class:`~pdf_indexer.errors.IngestionFailed` and leaves
the index untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, TypeVar

from pdf_indexer.config import Settings
from pdf_indexer.errors import (
    ConfigurationMismatchError,
    IngestionCancelledError,
    IngestionError,
    IngestionFailed,
    Stage,
)
from pdf_indexer.ingestion.chunker import split_pages
from pdf_indexer.ingestion.embedder import Embedder
from pdf_indexer.ingestion.loader import ObjectStoreBase, parse_pdf
from pdf_indexer.ingestion.models import Segment, VectorRecord
from pdf_indexer.ingestion.records import build_record
from pdf_indexer.store.upserter import Upserter, namespace_for_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class IngestionResult:
    """Outcome of a successful run, with a sample for logging / verification."""

    storage_key: str
    namespace: str
    records_upserted: int
    sample_segment: Segment
    sample_record: VectorRecord


class IngestionPipeline:
    """Sequences fetch → parse → chunk → embed → build → upsert for one document.

    Every collaborator is injected, so tests can substitute fakes.

    Parameters
    ----------
    object_store:
        Resolves storage keys to local files.
    embedder:
        Produces one vector per segment.
    upserter:
        Writes records into a namespace.
    settings:
        Chunking, retry and fan-out configuration.
    """

    def __init__(
        self,
        object_store: ObjectStoreBase,
        embedder: Embedder,
        upserter: Upserter,
        settings: Settings,
    ) -> None:
        backend_dim = embedder.backend.dimension
        if backend_dim is not None and backend_dim != settings.embedding_dim:
            raise ConfigurationMismatchError(
                f"Embedding backend produces {backend_dim}-d vectors, "
                f"index {settings.vector_index_name!r} expects {settings.embedding_dim}"
            )
        if embedder.dimension != settings.embedding_dim:
            raise ConfigurationMismatchError(
                f"Embedder validates {embedder.dimension}-d vectors, "
                f"index expects {settings.embedding_dim}"
            )
        self.object_store = object_store
        self.embedder = embedder
        self.upserter = upserter
        self.settings = settings
        self._namespace_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # -- public API -----------------------------------------------------------

    async def ingest(
        self,
        storage_key: str,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestionResult:
        """Ingest the PDF stored under *storage_key*.

        Runs against the same namespace are serialised.  Setting
        *cancel_event* aborts in-flight embedding calls and skips the upsert.

        Raises
        ------
        IngestionFailed
            With the failing stage, the cause and the number of attempts.
        """
        namespace = namespace_for_key(storage_key)
        lock = self._namespace_locks.setdefault(namespace, asyncio.Lock())
        self._lock_users[namespace] += 1
        try:
            async with lock:
                return await self._run(storage_key, namespace, cancel_event)
        finally:
            # Last holder or waiter drops the entry.
            self._lock_users[namespace] -= 1
            if not self._lock_users[namespace]:
                del self._lock_users[namespace]
                del self._namespace_locks[namespace]

    # -- stages ---------------------------------------------------------------

    async def _run(
        self,
        storage_key: str,
        namespace: str,
        cancel_event: asyncio.Event | None,
    ) -> IngestionResult:
        logger.info("Downloading %s", storage_key)
        path = await self._with_retries(
            Stage.FETCHED, lambda: asyncio.to_thread(self.object_store.fetch, storage_key)
        )

        logger.info("Parsing PDF %s", path)
        try:
            pages = await self._once(Stage.PARSED, lambda: asyncio.to_thread(parse_pdf, path))
        finally:
            self.object_store.release(path)

        logger.info("Splitting %d pages", len(pages))
        segments = await self._once(
            Stage.CHUNKED,
            lambda: asyncio.to_thread(
                split_pages,
                pages,
                self.settings.chunk_size,
                self.settings.chunk_overlap,
                self.settings.metadata_text_max_bytes,
            ),
        )

        logger.info("Embedding %d segments", len(segments))
        vectors = await self._embed_all(segments, cancel_event)

        records = await self._once(Stage.RECORDS_BUILT, lambda: self._build_records(segments, vectors))

        self._raise_if_cancelled(Stage.UPSERTED, cancel_event)
        written = await self._with_retries(
            Stage.UPSERTED, lambda: self.upserter.upsert(namespace, records)
        )
        logger.info("Ingested %s: %d records in namespace %r", storage_key, written, namespace)

        return IngestionResult(
            storage_key=storage_key,
            namespace=namespace,
            records_upserted=written,
            sample_segment=segments[0],
            sample_record=records[0],
        )

    async def _embed_all(
        self,
        segments: Sequence[Segment],
        cancel_event: asyncio.Event | None,
    ) -> list[list[float]]:
        """Embed every segment with bounded fan-out; results keep segment order."""
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_embeddings)

        async def embed_one(index: int, segment: Segment) -> tuple[int, list[float]]:
            async with semaphore:
                vector = await self._with_retries(
                    Stage.EMBEDDED, lambda: self.embedder.embed(segment.content)
                )
            return index, vector

        self._raise_if_cancelled(Stage.EMBEDDED, cancel_event)
        pending = {asyncio.ensure_future(embed_one(i, s)) for i, s in enumerate(segments)}
        cancel_waiter = asyncio.ensure_future(cancel_event.wait()) if cancel_event else None
        vectors: list[list[float] | None] = [None] * len(segments)
        try:
            while pending:
                waitables = pending | {cancel_waiter} if cancel_waiter else pending
                done, _ = await asyncio.wait(waitables, return_when=asyncio.FIRST_COMPLETED)
                if cancel_waiter is not None and cancel_waiter in done:
                    self._raise_if_cancelled(Stage.EMBEDDED, cancel_event)
                for task in done:
                    pending.discard(task)
                    index, vector = task.result()
                    vectors[index] = vector
        finally:
            for task in pending:
                task.cancel()
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        return vectors  # type: ignore[return-value]

    @staticmethod
    async def _build_records(
        segments: Sequence[Segment], vectors: Sequence[list[float]]
    ) -> list[VectorRecord]:
        return [build_record(segment, vector) for segment, vector in zip(segments, vectors)]

    # -- failure handling -----------------------------------------------------

    @staticmethod
    def _raise_if_cancelled(stage: Stage, cancel_event: asyncio.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning("Ingestion cancelled before stage %s completed", stage.value)
            raise IngestionFailed(stage, IngestionCancelledError("Ingestion cancelled"))

    @staticmethod
    async def _once(stage: Stage, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except IngestionError as exc:
            logger.error("Stage %s failed: %s", stage.value, exc)
            raise IngestionFailed(stage, exc) from exc
        except Exception as exc:
            raise _unexpected(stage, exc) from exc

    async def _with_retries(self, stage: Stage, call: Callable[[], Awaitable[T]]) -> T:
        """Run *call*, retrying retryable failures with exponential backoff."""
        max_attempts = self.settings.max_retries + 1
        attempt = 0
        while True:
            attempt += 1
            try:
                return await call()
            except IngestionError as exc:
                if not exc.retryable or attempt >= max_attempts:
                    logger.error(
                        "Stage %s failed after %d attempt(s): %s", stage.value, attempt, exc
                    )
                    raise IngestionFailed(stage, exc, attempts=attempt) from exc
                wait = min(
                    self.settings.retry_backoff_seconds * 2 ** (attempt - 1),
                    self.settings.retry_backoff_max_seconds,
                )
                logger.warning(
                    "Retry %d/%d for stage %s (wait %.1fs): %s",
                    attempt, max_attempts - 1, stage.value, wait, exc,
                )
                await asyncio.sleep(wait)
            except Exception as exc:
                raise _unexpected(stage, exc, attempts=attempt) from exc


def _unexpected(stage: Stage, exc: Exception, *, attempts: int = 1) -> IngestionFailed:
    """Wrap an exception no adapter classified; it is never retried."""
    logger.exception("Stage %s raised %s", stage.value, type(exc).__name__)
    return IngestionFailed(
        stage, IngestionError(f"Unexpected {type(exc).__name__}: {exc}"), attempts=attempts
    )


def build_pipeline(settings: Settings) -> IngestionPipeline:
    """Wire production clients from *settings*."""
    from pdf_indexer.ingestion.embedder import (
        HuggingFaceEmbeddingBackend,
        OpenAIEmbeddingBackend,
    )
    from pdf_indexer.ingestion.loader import HttpObjectStore, LocalObjectStore
    from pdf_indexer.store.chroma_store import ChromaVectorStore

    if settings.object_store_base_url:
        object_store: ObjectStoreBase = HttpObjectStore(
            settings.object_store_base_url, timeout=settings.request_timeout
        )
    elif settings.object_store_root:
        object_store = LocalObjectStore(settings.object_store_root)
    else:
        raise ValueError("Set OBJECT_STORE_BASE_URL or OBJECT_STORE_ROOT")

    if settings.embedding_backend == "openai":
        backend = OpenAIEmbeddingBackend.from_api_key(
            settings.openai_api_key,
            settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    else:
        backend = HuggingFaceEmbeddingBackend.from_model_name(settings.embedding_model)

    store = ChromaVectorStore.connect(
        settings.chroma_host,
        settings.chroma_port,
        settings.vector_index_name,
        api_key=settings.vector_store_api_key,
        distance_metric=settings.chroma_distance_metric,
    )

    return IngestionPipeline(
        object_store=object_store,
        embedder=Embedder(backend, dimension=settings.embedding_dim, timeout=settings.request_timeout),
        upserter=Upserter(store, batch_size=settings.upsert_batch_size, timeout=settings.request_timeout),
        settings=settings,
    )

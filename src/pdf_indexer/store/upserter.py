"""Namespace derivation and batched, time-bounded upserts."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import unicodedata
from typing import Sequence

from pdf_indexer.errors import BackendWriteError, EmptyBatchError
from pdf_indexer.ingestion.models import VectorRecord
from pdf_indexer.store.base import VectorStoreBase

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_DOTS = re.compile(r"\.{2,}")


def namespace_for_key(storage_key: str) -> str:
    """Derive the ASCII-safe namespace holding one document's records.

    Accents are folded (``é`` → ``e``), other non-ASCII characters dropped,
    and every run of characters outside ``[A-Za-z0-9._-]`` becomes ``-``.
    When that rewrites the key, a short digest of the raw key is appended so
    that keys differing only in dropped or replaced characters stay apart.
    Keys with nothing usable left fall back to a digest of the raw key.
    """
    folded = unicodedata.normalize("NFKD", storage_key).encode("ascii", "ignore").decode("ascii")
    namespace = _DOTS.sub(".", _UNSAFE.sub("-", folded))
    namespace = re.sub(r"^[^A-Za-z0-9]+|[^A-Za-z0-9]+$", "", namespace)
    digest = hashlib.md5(storage_key.encode("utf-8")).hexdigest()
    if not namespace:
        return f"doc-{digest[:12]}"
    if namespace != storage_key:
        namespace = f"{namespace}-{digest[:8]}"
    return namespace


class Upserter:
    """Writes one document's records into its namespace.

    Parameters
    ----------
    store:
        Concrete vector-store backend.
    batch_size:
        Max records per backend call.
    timeout:
        Per-call timeout in seconds; a timeout is a retryable failure.  The
        timed-out write is still awaited before the error is raised, so two
        writes to one namespace never overlap.
    """

    def __init__(self, store: VectorStoreBase, *, batch_size: int = 100, timeout: float = 30.0) -> None:
        self.store = store
        self.batch_size = batch_size
        self.timeout = timeout

    async def upsert(self, namespace: str, records: Sequence[VectorRecord]) -> int:
        """Upsert *records* and return how many distinct ids were written.

        Raises
        ------
        EmptyBatchError
            If *records* is empty; the backend is not contacted.
        BackendWriteError
            If a batch is rejected or times out.
        """
        if not records:
            raise EmptyBatchError("No vectors to insert")

        # Repeated text hashes to the same id; the backend may reject duplicates in one call.
        unique = list({r.id: r for r in records}.values())
        if len(unique) < len(records):
            logger.info("Dropped %d duplicate records", len(records) - len(unique))
        records = unique

        logger.info(
            "Upserting %d vectors to index %r / namespace %r",
            len(records), self.store.index_name, namespace,
        )
        for start in range(0, len(records), self.batch_size):
            batch = records[start : start + self.batch_size]
            write = asyncio.ensure_future(asyncio.to_thread(self.store.upsert, namespace, batch))
            try:
                await asyncio.wait_for(asyncio.shield(write), self.timeout)
            except asyncio.TimeoutError as exc:
                # The worker thread cannot be interrupted; it must finish before
                # a retry or a release of the namespace lock.
                logger.warning(
                    "Upsert to namespace %r exceeded %.1fs, waiting for the write to settle",
                    namespace, self.timeout,
                )
                await asyncio.gather(write, return_exceptions=True)
                raise BackendWriteError(
                    f"Upsert of batch at offset {start} timed out after {self.timeout}s",
                    retryable=True,
                ) from exc
            logger.debug("  upserted %d-%d", start, start + len(batch))
        return len(records)

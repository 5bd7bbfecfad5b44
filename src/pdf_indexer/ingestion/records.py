"""Vector-record assembly with content-addressed ids."""

from __future__ import annotations

import hashlib

from pydantic import ValidationError

from pdf_indexer.errors import InvalidMetadataError
from pdf_indexer.ingestion.models import RecordMetadata, Segment, VectorRecord


def record_id(text: str) -> str:
    """MD5 hex digest of *text*; identical content always maps to the same id."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def build_record(segment: Segment, vector: list[float]) -> VectorRecord:
    """Pair *segment* with its embedding.

    Raises
    ------
    InvalidMetadataError
        If the page number is not an ``int`` or the stored text is not a ``str``.
    """
    try:
        metadata = RecordMetadata(page_number=segment.page_number, text=segment.truncated_text)
    except ValidationError as exc:
        raise InvalidMetadataError(
            f"Invalid metadata (pageNumber / text): {exc.error_count()} error(s)"
        ) from exc
    return VectorRecord(id=record_id(segment.content), values=vector, metadata=metadata)

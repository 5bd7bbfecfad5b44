"""Page-aware text chunking."""

from __future__ import annotations

import logging
from typing import Iterable

from langchain_text_splitters import RecursiveCharacterTextSplitter

from pdf_indexer.errors import NoExtractableTextError
from pdf_indexer.ingestion.models import Page, Segment
from pdf_indexer.ingestion.normalizer import normalize, truncate_by_bytes

logger = logging.getLogger(__name__)

DEFAULT_METADATA_MAX_BYTES = 36_000


def split_pages(
    pages: Iterable[Page],
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    metadata_max_bytes: int = DEFAULT_METADATA_MAX_BYTES,
) -> list[Segment]:
    """Split *pages* into overlapping segments for embedding.

    Parameters
    ----------
    pages:
        Pages produced by the PDF parser, in document order.
    chunk_size:
        Maximum number of characters per segment.
    chunk_overlap:
        Number of overlapping characters between consecutive segments.
    metadata_max_bytes:
        UTF-8 byte budget for the page text copied into each segment's
        ``truncated_text``.

    Returns
    -------
    list[Segment]
        Segments in page order, then split order within a page.

    Raises
    ------
    NoExtractableTextError
        If every page is blank once normalised.
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})"
        )

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=["\n\n", "\n", ". ", " ", ""],
    )

    segments: list[Segment] = []
    blank = 0
    for page in pages:
        cleaned = normalize(page.content)
        if not cleaned:
            blank += 1
            continue
        stored_text = truncate_by_bytes(cleaned, metadata_max_bytes)
        for chunk in splitter.split_text(cleaned):
            segments.append(
                Segment(content=chunk, page_number=page.page_number, truncated_text=stored_text)
            )

    if not segments:
        raise NoExtractableTextError(
            "PDF had no extractable text (maybe a scanned-image PDF)."
        )

    logger.info("Split pages into %d segments (%d blank pages skipped)", len(segments), blank)
    return segments

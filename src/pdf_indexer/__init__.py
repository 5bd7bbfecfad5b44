"""
pdf-indexer — publish PDFs from object storage into a vector index.

Public surface
--------------
- :class:`IngestionPipeline`, :func:`build_pipeline` — the write path.
- :class:`IngestionResult` — success outcome with a sample record.
- :class:`IngestionFailed`, :class:`Stage` — structured failure.
"""

from pdf_indexer.errors import IngestionFailed, Stage
from pdf_indexer.pipeline import IngestionPipeline, IngestionResult, build_pipeline

__all__ = [
    "IngestionFailed",
    "IngestionPipeline",
    "IngestionResult",
    "Stage",
    "build_pipeline",
]

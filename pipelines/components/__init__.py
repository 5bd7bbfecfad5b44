"""KFP v2 components — each file exports one @dsl.component."""

from pipelines.components.ingest import ingest_pdf

__all__ = [
    "ingest_pdf",
]

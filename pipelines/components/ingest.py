"""KFP v2 component — Ingest one PDF from object storage into the vector index.

Wraps :class:`pdf_indexer.pipeline.IngestionPipeline` so the whole write
path (fetch → parse → chunk → embed → build records → upsert) runs as a
single step; partial upserts are impossible by construction.

Local testing
-------------
    from pipelines.components.ingest import ingest_pdf
    ingest_pdf.python_func(
        storage_key="uploads/report.pdf",
        object_store_base_url="https://bucket.example.com",
        chroma_host="localhost",
        chroma_port=8000,
        index_name="chatdocs",
        metrics=_FakeArtifact("/tmp/metrics"),
    )
"""

from kfp import dsl


@dsl.component(
    base_image="python:3.11-slim",
    packages_to_install=["pdf-indexer"],
)
def ingest_pdf(
    storage_key: str,
    object_store_base_url: str,
    chroma_host: str,
    chroma_port: int,
    index_name: str,
    metrics: dsl.Output[dsl.Metrics],
    embedding_backend: str = "openai",
    embedding_model: str = "text-embedding-ada-002",
    embedding_dim: int = 1536,
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    max_concurrent_embeddings: int = 8,
    max_retries: int = 3,
    request_timeout: float = 30.0,
) -> str:
    """Ingest *storage_key* and report what was written.

    Parameters
    ----------
    storage_key:
        Key of the PDF in object storage.
    object_store_base_url:
        HTTP(S) prefix the key is appended to.
    chroma_host / chroma_port:
        Vector-store connection details.
    index_name:
        Index name; the document's namespace collection lives under it.
    metrics:
        Output Metrics artifact with ingestion statistics.
    embedding_backend:
        ``"openai"`` | ``"huggingface"``; API keys come from the environment.
    embedding_model / embedding_dim:
        Model identifier and the index dimensionality it must match.
    chunk_size / chunk_overlap:
        Text chunking parameters.
    max_concurrent_embeddings:
        Upper bound on in-flight embedding calls.
    max_retries / request_timeout:
        Retry budget and per-call timeout for network stages.

    Returns
    -------
    str
        Summary, e.g. ``"Upserted 42 records → namespace 'report.pdf'"``.
    """
    import asyncio
    import logging
    import time

    from pdf_indexer.config import Settings
    from pdf_indexer.errors import IngestionFailed
    from pdf_indexer.pipeline import build_pipeline

    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger("ingest_pdf")

    cfg = Settings(
        object_store_base_url=object_store_base_url,
        chroma_host=chroma_host,
        chroma_port=chroma_port,
        vector_index_name=index_name,
        embedding_backend=embedding_backend,
        embedding_model=embedding_model,
        embedding_dim=embedding_dim,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        max_concurrent_embeddings=max_concurrent_embeddings,
        max_retries=max_retries,
        request_timeout=request_timeout,
    )
    pipeline = build_pipeline(cfg)

    t0 = time.monotonic()
    try:
        result = asyncio.run(pipeline.ingest(storage_key))
    except IngestionFailed as exc:
        metrics.log_metric("failed_attempts", exc.attempts)
        log.error("✗ %s: %s", storage_key, exc)
        raise
    elapsed = time.monotonic() - t0

    # KFP Metrics
    metrics.log_metric("records_upserted", result.records_upserted)
    metrics.log_metric("ingest_elapsed_seconds", round(elapsed, 2))

    msg = (f"Upserted {result.records_upserted} records → namespace "
           f"'{result.namespace}' in {elapsed:.1f}s")
    log.info(msg)
    return msg

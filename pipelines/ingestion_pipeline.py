"""KFP v2 pipeline — PDF ingestion into the vector index.

One document per run; the whole write path runs inside ``ingest_pdf`` so
records are only upserted once every embedding succeeded.

Compile
-------
    python -m pipelines.ingestion_pipeline --compile
"""

from kfp import compiler, dsl

from pipelines.components.ingest import ingest_pdf


@dsl.pipeline(
    name="pdf-ingestion-pipeline",
    description=(
        "Fetch a PDF from object storage, split it into segments, embed them "
        "and upsert the records into the document's namespace."
    ),
)
def pdf_ingestion_pipeline(
    # ── Source ──────────────────────────────────────────────────────
    storage_key: str,
    object_store_base_url: str = "http://minio.kubeflow.svc.cluster.local:9000/documents",
    # ── Chunking ───────────────────────────────────────────────────
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
    # ── Embedding ──────────────────────────────────────────────────
    embedding_backend: str = "openai",
    embedding_model: str = "text-embedding-ada-002",
    embedding_dim: int = 1536,
    max_concurrent_embeddings: int = 8,
    # ── Vector DB ──────────────────────────────────────────────────
    chroma_host: str = "chroma.kubeflow.svc.cluster.local",
    chroma_port: int = 8000,
    index_name: str = "chatdocs",
    # ── Failure handling ───────────────────────────────────────────
    max_retries: int = 3,
    request_timeout: float = 30.0,
) -> None:
    """Single-step ingestion of *storage_key*.

    Parameters
    ----------
    storage_key:
        Key of the PDF in object storage.
    object_store_base_url:
        HTTP(S) prefix of the bucket.
    chunk_size / chunk_overlap:
        Text chunking parameters.
    embedding_backend / embedding_model / embedding_dim:
        Embedding provider, model and the index dimensionality.
    max_concurrent_embeddings:
        Upper bound on in-flight embedding calls.
    chroma_host / chroma_port / index_name:
        Chroma connection details and index prefix.
    max_retries / request_timeout:
        Retry budget and per-call timeout.
    """
    ingest_pdf(
        storage_key=storage_key,
        object_store_base_url=object_store_base_url,
        chroma_host=chroma_host,
        chroma_port=chroma_port,
        index_name=index_name,
        embedding_backend=embedding_backend,
        embedding_model=embedding_model,
        embedding_dim=embedding_dim,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        max_concurrent_embeddings=max_concurrent_embeddings,
        max_retries=max_retries,
        request_timeout=request_timeout,
    )


# ──────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="PDF ingestion pipeline")
    parser.add_argument(
        "--compile",
        action="store_true",
        help="Compile pipeline to YAML",
    )
    parser.add_argument(
        "--output",
        default="pipelines/compiled/pdf_ingestion_pipeline.yaml",
        help="Output path for compiled YAML",
    )
    args = parser.parse_args()

    if args.compile:
        compiler.Compiler().compile(pdf_ingestion_pipeline, args.output)
        print(f"Pipeline compiled → {args.output}")

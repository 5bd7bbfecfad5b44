"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Ingestion settings, populated from env vars or .env file."""

    # Vector store
    vector_index_name: str = Field(
        default="chatdocs",
        description="Index name; every document namespace lives under it.",
    )
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_distance_metric: Literal["cosine", "l2", "ip"] = "cosine"
    vector_store_api_key: str = Field(default="", description="Bearer token for the vector store")
    upsert_batch_size: int = Field(default=100, gt=0)

    # Embedding
    embedding_backend: Literal["openai", "huggingface"] = "openai"
    openai_api_key: str = ""
    openai_base_url: str = Field(
        default="",
        description="Base URL for an OpenAI-compatible embeddings API. Empty means OpenAI cloud.",
    )
    embedding_model: str = "text-embedding-ada-002"
    embedding_dim: int = Field(default=1536, gt=0, description="Dimensionality declared by the index")

    # Chunking
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    metadata_text_max_bytes: int = Field(
        default=36_000,
        gt=0,
        description="Byte cap on the page text stored as record metadata (vector-store metadata size limit).",
    )

    # Calls, retries, fan-out
    request_timeout: float = Field(default=30.0, gt=0, description="Per-call timeout in seconds")
    max_concurrent_embeddings: int = Field(default=8, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: float = Field(default=1.0, ge=0)
    retry_backoff_max_seconds: float = Field(default=30.0, ge=0)

    # Object storage
    object_store_base_url: str = Field(
        default="",
        description="HTTP(S) prefix the storage key is appended to. Takes precedence over object_store_root.",
    )
    object_store_root: str = Field(default="", description="Local directory used as object storage")

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_chunking(self) -> Settings:
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be < chunk_size ({self.chunk_size})"
            )
        return self


# Singleton read by entry points; library code takes settings as an argument.
settings = Settings()

"""Embedding generation.

:class:`Embedder` owns the per-call contract (newline clean-up, timeout,
response validation); backends only talk to a provider and return the raw
OpenAI-style payload ``{"data": [{"embedding": [...]}]}``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Mapping, Protocol

import openai

from pdf_indexer.errors import EmbeddingBackendError

if TYPE_CHECKING:
    from langchain_huggingface import HuggingFaceEmbeddings

logger = logging.getLogger(__name__)

# Known output sizes; unknown models report ``None`` and are checked per vector.
OPENAI_MODEL_DIMENSIONS = {
    "text-embedding-ada-002": 1536,
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
}


class EmbeddingBackend(Protocol):
    """Anything that can turn one text into a raw embeddings payload."""

    @property
    def dimension(self) -> int | None: ...

    async def create_embedding(self, text: str) -> Mapping[str, Any]: ...


class OpenAIEmbeddingBackend:
    """OpenAI (or OpenAI-compatible) embeddings endpoint.

    SDK-level retries are disabled; the pipeline owns retry policy.
    """

    def __init__(self, client: openai.AsyncOpenAI, model: str = "text-embedding-ada-002") -> None:
        self._client = client
        self.model = model

    @classmethod
    def from_api_key(cls, api_key: str, model: str, *, base_url: str = "", timeout: float = 30.0):
        client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=timeout,
            max_retries=0,
        )
        return cls(client, model)

    @property
    def dimension(self) -> int | None:
        return OPENAI_MODEL_DIMENSIONS.get(self.model)

    async def create_embedding(self, text: str) -> Mapping[str, Any]:
        try:
            response = await self._client.embeddings.create(model=self.model, input=text)
        except (openai.APITimeoutError, openai.APIConnectionError) as exc:
            raise EmbeddingBackendError(
                f"Embedding request failed: {type(exc).__name__}", retryable=True
            ) from exc
        except openai.APIStatusError as exc:
            raise EmbeddingBackendError(
                f"Embedding request rejected with HTTP {exc.status_code}",
                retryable=exc.status_code >= 500 or exc.status_code == 429,
            ) from exc
        return response.model_dump()


class HuggingFaceEmbeddingBackend:
    """Local sentence-transformer model via ``langchain-huggingface``."""

    def __init__(self, model: HuggingFaceEmbeddings) -> None:
        self._model = model

    @classmethod
    def from_model_name(cls, model_name: str) -> HuggingFaceEmbeddingBackend:
        from langchain_huggingface import HuggingFaceEmbeddings

        return cls(HuggingFaceEmbeddings(model_name=model_name))

    @property
    def dimension(self) -> int | None:
        return None

    async def create_embedding(self, text: str) -> Mapping[str, Any]:
        vector = await asyncio.to_thread(self._model.embed_query, text)
        return {"data": [{"embedding": list(vector)}]}


class Embedder:
    """Produces one validated vector per text.

    Parameters
    ----------
    backend:
        Provider adapter.
    dimension:
        Expected vector length (the index dimensionality).
    timeout:
        Per-call timeout in seconds; a timeout is a retryable failure.
    """

    def __init__(self, backend: EmbeddingBackend, *, dimension: int, timeout: float = 30.0) -> None:
        self.backend = backend
        self.dimension = dimension
        self.timeout = timeout

    async def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*.

        Raises
        ------
        EmbeddingBackendError
            If the call fails, times out, or the payload has no usable vector.
        """
        cleaned = text.replace("\n", " ")
        try:
            payload = await asyncio.wait_for(self.backend.create_embedding(cleaned), self.timeout)
        except asyncio.TimeoutError as exc:
            raise EmbeddingBackendError(
                f"Embedding call timed out after {self.timeout}s", retryable=True
            ) from exc
        except EmbeddingBackendError:
            raise
        except Exception as exc:
            logger.error("Embedding backend raised %s: %s", type(exc).__name__, exc)
            raise EmbeddingBackendError(f"Embedding backend error: {exc}") from exc

        return self._extract_vector(payload)

    def _extract_vector(self, payload: Mapping[str, Any]) -> list[float]:
        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, list) or not data:
            logger.error("Embedding response without data: %r", payload)
            raise EmbeddingBackendError("Invalid embedding response: missing 'data'.")

        first = data[0]
        vector = first.get("embedding") if isinstance(first, Mapping) else None
        if not isinstance(vector, (list, tuple)) or not vector:
            logger.error("Embedding response without vector: %r", first)
            raise EmbeddingBackendError("Invalid embedding response: missing 'embedding'.")
        if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector):
            raise EmbeddingBackendError("Invalid embedding vector: must be a list of floats.")
        if len(vector) != self.dimension:
            raise EmbeddingBackendError(
                f"Embedding has {len(vector)} dimensions, index expects {self.dimension}."
            )
        return [float(x) for x in vector]

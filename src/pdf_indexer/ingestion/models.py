"""Domain models flowing through the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


@dataclass(frozen=True, slots=True)
class Page:
    """Raw text of one PDF page as returned by the parser."""

    content: str
    page_number: int


@dataclass(frozen=True, slots=True)
class Segment:
    """Bounded span of normalised page text.

    ``content`` is what gets embedded and hashed; ``truncated_text`` is the
    byte-capped page text stored as metadata only.
    """

    content: str
    page_number: int
    truncated_text: str


class RecordMetadata(BaseModel):
    """Metadata stored next to a vector.

    Only primitives are accepted; the vector store rejects nested values.
    Serialised with the ``pageNumber`` key readers of the index expect.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    page_number: StrictInt = Field(alias="pageNumber")
    text: StrictStr


class VectorRecord(BaseModel):
    """A single vector-store entry."""

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    metadata: RecordMetadata

    def metadata_dict(self) -> dict[str, int | str]:
        """Return metadata as the flat dict sent to the backend."""
        return self.metadata.model_dump(by_alias=True)

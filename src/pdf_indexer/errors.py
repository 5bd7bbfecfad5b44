"""Error taxonomy for the ingestion write path.

Every stage error derives from :class:`IngestionError` and says whether a
retry may succeed.  The pipeline turns them into a single
:class:`IngestionFailed` tagged with the stage that failed.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """Pipeline states, in execution order."""

    FETCHED = "fetched"
    PARSED = "parsed"
    CHUNKED = "chunked"
    EMBEDDED = "embedded"
    RECORDS_BUILT = "records_built"
    UPSERTED = "upserted"


class IngestionError(Exception):
    """Base class for stage failures.

    Parameters
    ----------
    message:
        Human-readable description.
    retryable:
        ``True`` when the failure is transient (timeout, 5xx, connection).
    """

    default_retryable = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        self.retryable = self.default_retryable if retryable is None else retryable


class ObjectNotFoundError(IngestionError):
    """The storage key does not exist."""


class TransferError(IngestionError):
    """Downloading the object failed."""

    default_retryable = True


class UnparsablePDFError(IngestionError):
    """The downloaded bytes could not be read as a PDF."""


class NoExtractableTextError(IngestionError):
    """Every page was blank; most likely a scanned-image PDF."""


class EmbeddingBackendError(IngestionError):
    """The embedding call failed or returned a malformed response."""


class InvalidMetadataError(IngestionError):
    """Record metadata is not made of the expected primitives."""


class EmptyBatchError(IngestionError):
    """An upsert was requested with no records."""


class BackendWriteError(IngestionError):
    """The vector store rejected or did not acknowledge a write."""


class IngestionCancelledError(IngestionError):
    """The run was cancelled from outside."""


class ConfigurationMismatchError(ValueError):
    """The embedding backend and the index disagree on vector dimensionality."""


class IngestionFailed(Exception):
    """Structured failure surfaced to callers of the pipeline.

    Attributes
    ----------
    stage:
        The stage being executed when the run aborted.
    cause:
        The originating :class:`IngestionError`.
    attempts:
        Number of attempts made for the failing call (``1`` = not retried).
    """

    def __init__(self, stage: Stage, cause: IngestionError, *, attempts: int = 1) -> None:
        self.stage = stage
        self.cause = cause
        self.attempts = attempts
        super().__init__(
            f"ingestion failed at stage {stage.value!r} after {attempts} attempt(s): "
            f"{type(cause).__name__}: {cause}"
        )

    @property
    def retried(self) -> bool:
        return self.attempts > 1

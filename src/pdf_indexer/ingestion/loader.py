"""Object-storage retrieval and PDF parsing.

Object stores hand back a local path to the raw bytes; :func:`parse_pdf`
turns that file into :class:`~pdf_indexer.ingestion.models.Page` objects
with LangChain's ``PyPDFLoader``.
"""

from __future__ import annotations

import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote

import requests
from langchain_community.document_loaders import PyPDFLoader

from pdf_indexer.errors import ObjectNotFoundError, TransferError, UnparsablePDFError
from pdf_indexer.ingestion.models import Page

logger = logging.getLogger(__name__)


class ObjectStoreBase(ABC):
    """Backend-agnostic object-storage reader."""

    @abstractmethod
    def fetch(self, key: str) -> Path:
        """Return a local, readable path holding the bytes stored under *key*.

        Raises
        ------
        ObjectNotFoundError
            The key does not exist.
        TransferError
            The bytes could not be retrieved.
        """
        ...

    def release(self, path: Path) -> None:
        """Drop any local copy made by :meth:`fetch`.  No-op by default."""


class LocalObjectStore(ObjectStoreBase):
    """Treats a local directory as the bucket; keys are relative paths."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def fetch(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise ObjectNotFoundError(f"Key escapes the store root: {key!r}")
        if not path.is_file():
            raise ObjectNotFoundError(f"No object stored under {key!r}")
        return path


class HttpObjectStore(ObjectStoreBase):
    """Downloads ``<base_url>/<key>`` into a temporary file.

    Works with any bucket exposed over HTTP(S) (public buckets, S3-compatible
    gateways, pre-signed prefixes).

    Parameters
    ----------
    base_url:
        Prefix the URL-quoted key is appended to.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional ``requests.Session`` (injected in tests).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self._session = session or requests.Session()

    def fetch(self, key: str) -> Path:
        url = f"{self.base_url}/{quote(key.lstrip('/'))}"
        try:
            resp = self._session.get(url, headers=self.headers, timeout=self.timeout, stream=True)
        except requests.RequestException as exc:
            raise TransferError(f"Download of {key!r} failed: {exc}") from exc

        if resp.status_code == 404:
            resp.close()
            raise ObjectNotFoundError(f"No object stored under {key!r}")
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            resp.close()
            # 4xx other than 404 will not fix itself on retry.
            raise TransferError(
                f"Download of {key!r} failed: HTTP {resp.status_code}",
                retryable=resp.status_code >= 500 or resp.status_code == 429,
            ) from exc

        suffix = Path(key).suffix or ".pdf"
        with tempfile.NamedTemporaryFile(prefix="pdf-indexer-", suffix=suffix, delete=False) as fh:
            try:
                for block in resp.iter_content(chunk_size=1 << 16):
                    fh.write(block)
            except requests.RequestException as exc:
                Path(fh.name).unlink(missing_ok=True)
                raise TransferError(f"Download of {key!r} interrupted: {exc}") from exc
            finally:
                resp.close()
        logger.debug("Downloaded %s → %s", url, fh.name)
        return Path(fh.name)

    def release(self, path: Path) -> None:
        path.unlink(missing_ok=True)


def parse_pdf(path: str | Path) -> list[Page]:
    """Load a PDF into pages (1-based page numbers), blank pages included."""
    try:
        documents = PyPDFLoader(str(path)).load()
    except Exception as exc:
        raise UnparsablePDFError(f"Could not parse {path}: {exc}") from exc

    pages = [
        Page(content=doc.page_content or "", page_number=int(doc.metadata.get("page", idx)) + 1)
        for idx, doc in enumerate(documents)
    ]
    logger.info("Parsed %d pages from %s", len(pages), path)
    return pages

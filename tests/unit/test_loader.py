"""Unit tests for object stores and PDF parsing."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from langchain_core.documents import Document

from pdf_indexer.errors import ObjectNotFoundError, TransferError, UnparsablePDFError
from pdf_indexer.ingestion.loader import HttpObjectStore, LocalObjectStore, parse_pdf


class TestLocalObjectStore:
    def test_fetch_existing_key(self, tmp_path: Path) -> None:
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.pdf").write_bytes(b"%PDF-1.4")
        store = LocalObjectStore(tmp_path)
        assert store.fetch("docs/a.pdf") == (tmp_path / "docs" / "a.pdf").resolve()

    def test_missing_key_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ObjectNotFoundError):
            LocalObjectStore(tmp_path).fetch("nope.pdf")

    def test_key_cannot_escape_root(self, tmp_path: Path) -> None:
        root = tmp_path / "bucket"
        root.mkdir()
        (tmp_path / "secret.pdf").write_bytes(b"x")
        with pytest.raises(ObjectNotFoundError, match="escapes"):
            LocalObjectStore(root).fetch("../secret.pdf")

    def test_release_keeps_file(self, tmp_path: Path) -> None:
        (tmp_path / "a.pdf").write_bytes(b"x")
        store = LocalObjectStore(tmp_path)
        path = store.fetch("a.pdf")
        store.release(path)
        assert path.exists()


class TestHttpObjectStore:
    @staticmethod
    def _response(status: int, body: bytes = b"%PDF-1.4 data") -> MagicMock:
        resp = MagicMock(status_code=status)
        resp.iter_content.return_value = [body]
        if status >= 400:
            resp.raise_for_status.side_effect = requests.HTTPError(f"{status}")
        return resp

    def test_download_to_temp_file_and_release(self) -> None:
        session = MagicMock()
        session.get.return_value = self._response(200)
        store = HttpObjectStore("https://bucket.example.com/", session=session, timeout=5)

        path = store.fetch("uploads/My Report.pdf")

        assert path.read_bytes() == b"%PDF-1.4 data"
        assert path.suffix == ".pdf"
        url = session.get.call_args.args[0]
        assert url == "https://bucket.example.com/uploads/My%20Report.pdf"
        assert session.get.call_args.kwargs["timeout"] == 5
        store.release(path)
        assert not path.exists()

    def test_404_is_object_not_found(self) -> None:
        session = MagicMock()
        session.get.return_value = self._response(404)
        with pytest.raises(ObjectNotFoundError):
            HttpObjectStore("https://b", session=session).fetch("missing.pdf")

    @pytest.mark.parametrize("status, retryable", [(500, True), (503, True), (429, True), (403, False)])
    def test_http_errors(self, status: int, retryable: bool) -> None:
        session = MagicMock()
        session.get.return_value = self._response(status)
        with pytest.raises(TransferError) as info:
            HttpObjectStore("https://b", session=session).fetch("a.pdf")
        assert info.value.retryable is retryable

    def test_connection_error_is_retryable_transfer_error(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransferError) as info:
            HttpObjectStore("https://b", session=session).fetch("a.pdf")
        assert info.value.retryable is True


class TestParsePdf:
    def test_pages_are_one_based(self) -> None:
        docs = [
            Document(page_content="Hello world", metadata={"page": 0}),
            Document(page_content="  ", metadata={"page": 1}),
        ]
        with patch("pdf_indexer.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.load.return_value = docs
            pages = parse_pdf("/tmp/a.pdf")

        loader_cls.assert_called_once_with("/tmp/a.pdf")
        assert [(p.content, p.page_number) for p in pages] == [("Hello world", 1), ("  ", 2)]

    def test_loader_failure_is_unparsable(self) -> None:
        with patch("pdf_indexer.ingestion.loader.PyPDFLoader") as loader_cls:
            loader_cls.return_value.load.side_effect = RuntimeError("EOF marker not found")
            with pytest.raises(UnparsablePDFError, match="EOF marker"):
                parse_pdf("/tmp/broken.pdf")

    def test_missing_file_is_unparsable(self, tmp_path: Path) -> None:
        with pytest.raises(UnparsablePDFError):
            parse_pdf(tmp_path / "absent.pdf")

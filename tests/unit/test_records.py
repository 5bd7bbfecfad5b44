"""Unit tests for record building and content-addressed ids."""

from __future__ import annotations

import hashlib

import pytest

from pdf_indexer.errors import InvalidMetadataError
from pdf_indexer.ingestion.models import Segment
from pdf_indexer.ingestion.records import build_record, record_id

VECTOR = [0.1, 0.2, 0.3, 0.4]


def _segment(content: str = "Hello world", page_number=1, truncated_text="Hello world") -> Segment:
    return Segment(content=content, page_number=page_number, truncated_text=truncated_text)


class TestRecordId:
    def test_is_md5_hex_of_content(self) -> None:
        assert record_id("Hello world") == hashlib.md5(b"Hello world").hexdigest()
        assert len(record_id("Hello world")) == 32

    def test_same_text_same_id(self) -> None:
        assert record_id("abc") == record_id("abc")

    def test_single_character_change_changes_id(self) -> None:
        assert record_id("Hello world") != record_id("Hello worle")


class TestBuildRecord:
    def test_builds_record(self) -> None:
        record = build_record(_segment(), VECTOR)
        assert record.id == record_id("Hello world")
        assert record.values == VECTOR
        assert record.metadata_dict() == {"pageNumber": 1, "text": "Hello world"}

    def test_id_ignores_position_and_metadata(self) -> None:
        a = build_record(_segment(page_number=1, truncated_text="page one"), VECTOR)
        b = build_record(_segment(page_number=9, truncated_text="page nine"), VECTOR)
        assert a.id == b.id

    def test_rebuild_is_idempotent(self) -> None:
        assert build_record(_segment(), VECTOR) == build_record(_segment(), VECTOR)

    @pytest.mark.parametrize("page_number", ["1", 1.0, None, True])
    def test_non_integer_page_number_rejected(self, page_number) -> None:
        with pytest.raises(InvalidMetadataError, match="pageNumber"):
            build_record(_segment(page_number=page_number), VECTOR)

    @pytest.mark.parametrize("truncated_text", [None, 42, b"bytes", {"nested": "x"}])
    def test_non_string_text_rejected(self, truncated_text) -> None:
        with pytest.raises(InvalidMetadataError):
            build_record(_segment(truncated_text=truncated_text), VECTOR)

    def test_metadata_values_are_primitives(self) -> None:
        meta = build_record(_segment(), VECTOR).metadata_dict()
        assert all(isinstance(v, (str, int, float)) for v in meta.values())

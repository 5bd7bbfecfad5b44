"""Unit tests for text normalisation and byte truncation."""

from __future__ import annotations

import pytest

from pdf_indexer.ingestion.normalizer import normalize, truncate_by_bytes


class TestNormalize:
    def test_newlines_become_spaces(self) -> None:
        assert normalize("Hello\nworld") == "Hello world"

    def test_windows_line_endings(self) -> None:
        assert normalize("a\r\nb\rc") == "a b c"

    def test_strips_surrounding_whitespace(self) -> None:
        assert normalize("\n  padded text \n") == "padded text"

    def test_blank_input_is_empty(self) -> None:
        assert normalize("  \n\t ") == ""

    def test_lone_surrogate_replaced(self) -> None:
        text = normalize("bad \ud800 text")
        assert text == "bad ? text"
        assert truncate_by_bytes(text, 5) == "bad ?"


class TestTruncateByBytes:
    def test_ascii_cut(self) -> None:
        assert truncate_by_bytes("abcdef", 3) == "abc"

    def test_full_length_returns_input(self) -> None:
        text = "naïve café 日本語 🙂"
        assert truncate_by_bytes(text, len(text.encode("utf-8"))) == text

    def test_never_splits_multibyte_codepoint(self) -> None:
        # "é" is 2 bytes; a 2-byte budget after "a" leaves only half of it.
        assert truncate_by_bytes("aé", 2) == "a"
        # "🙂" is 4 bytes.
        assert truncate_by_bytes("🙂🙂", 7) == "🙂"

    @pytest.mark.parametrize("limit", range(0, 14))
    def test_result_fits_budget_and_is_prefix(self, limit: int) -> None:
        text = "x日本🙂y"
        result = truncate_by_bytes(text, limit)
        assert len(result.encode("utf-8")) <= limit
        assert text.startswith(result)

    def test_zero_budget(self) -> None:
        assert truncate_by_bytes("abc", 0) == ""

    def test_negative_budget_raises(self) -> None:
        with pytest.raises(ValueError, match="max_bytes"):
            truncate_by_bytes("abc", -1)

"""Text clean-up helpers."""

from __future__ import annotations

import re

_NEWLINES = re.compile(r"\r\n|\r|\n")


def normalize(raw: str) -> str:
    """Replace embedded newlines with spaces and strip surrounding whitespace.

    Code points UTF-8 cannot encode (lone surrogates from broken text layers)
    become ``?``.
    """
    text = _NEWLINES.sub(" ", raw).strip()
    return text.encode("utf-8", errors="replace").decode("utf-8")


def truncate_by_bytes(text: str, max_bytes: int) -> str:
    """Return the longest prefix of *text* whose UTF-8 encoding fits *max_bytes*.

    The cut always lands on a code point boundary: a partial multi-byte
    sequence at the end of the byte slice is dropped.
    """
    if max_bytes < 0:
        raise ValueError(f"max_bytes must be >= 0, got {max_bytes}")
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    # A prefix of valid UTF-8 can only be broken at its tail.
    return encoded[:max_bytes].decode("utf-8", errors="ignore")

"""Text normalization utilities for store search."""

from __future__ import annotations

import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")
_WHITESPACE = re.compile(r"\s+")


def normalize_search_text(text: Optional[str]) -> str:
    """Return ``text`` casefolded with control characters and extra spaces removed.

    Args:
        text: Query or field value; ``None`` normalizes to an empty string.

    Returns:
        str: Text suitable for case-insensitive substring comparison.
    """
    if not text:
        return ""
    sanitized = _CONTROL_CHARS.sub(" ", text)
    return _WHITESPACE.sub(" ", sanitized).strip().casefold()


def matches_query(needle: str, *fields: Optional[str]) -> bool:
    """Return True when the normalized ``needle`` occurs in any of ``fields``.

    An empty needle matches everything.
    """
    if not needle:
        return True
    return any(needle in normalize_search_text(value) for value in fields if value)


__all__ = ["normalize_search_text", "matches_query"]

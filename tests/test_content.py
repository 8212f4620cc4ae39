"""Tests for content classification and search normalization helpers."""

from __future__ import annotations

import pytest

from usinadocs.search import matches_query, normalize_search_text
from usinadocs.store.content import (
    FALLBACK_MIME_TYPE,
    classify_mime_type,
    detect_mime_type,
    format_file_size,
    safe_filename,
)


@pytest.mark.parametrize(
    ("mime", "expected"),
    [
        ("application/pdf", "pdf"),
        ("image/jpeg", "image"),
        ("IMAGE/PNG", "image"),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "doc"),
        ("text/plain", "doc"),
        (None, "doc"),
    ],
)
def test_classify_mime_type(mime, expected) -> None:
    assert classify_mime_type(mime) == expected


def test_detect_mime_type_falls_back() -> None:
    assert detect_mime_type("relatorio.pdf") == "application/pdf"
    assert detect_mime_type("sem-extensao") == FALLBACK_MIME_TYPE


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (1023, "1023 B"), (2048, "2.0 KB"), (int(1.5 * 1024 * 1024), "1.5 MB")],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


def test_safe_filename_strips_paths_and_reserved_characters() -> None:
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\temp\\nota?.pdf") == "nota.pdf"
    assert safe_filename("..hidden") == "hidden"
    assert safe_filename("...") == "unnamed_document"
    long_name = safe_filename("a" * 300 + ".pdf")
    assert len(long_name) == 200
    assert long_name.endswith(".pdf")


def test_search_normalization() -> None:
    assert normalize_search_text("  Relatório\tANUAL\x07 ") == "relatório anual"
    assert normalize_search_text(None) == ""
    assert matches_query("anual", "Relatório Anual")
    assert matches_query("", None)
    assert not matches_query("anual", None, "mensal")

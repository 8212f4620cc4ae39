"""Helpers for classifying and describing uploaded content."""

from __future__ import annotations

import mimetypes
import os

from .models import DocumentType

FALLBACK_MIME_TYPE = "application/octet-stream"


def detect_mime_type(file_name: str) -> str:
    """Guess a MIME type from ``file_name``, defaulting to octet-stream."""
    mime, _ = mimetypes.guess_type(file_name)
    return mime or FALLBACK_MIME_TYPE


def classify_mime_type(mime_type: str | None) -> DocumentType:
    """Map a MIME type onto the closed document type set."""
    lowered = (mime_type or "").lower()
    if "pdf" in lowered:
        return "pdf"
    if "image" in lowered:
        return "image"
    return "doc"


def format_file_size(size: int) -> str:
    """Return a short human-readable size such as ``2.0 KB``."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def safe_filename(file_name: str) -> str:
    """Sanitize ``file_name`` for object storage keys.

    Drops directory components, control and reserved characters, and leading
    dots. Long names are cut to 200 characters with the extension preserved.
    """
    name = os.path.basename(file_name.replace("\\", "/"))
    name = "".join(char for char in name if char.isprintable() and char not in '<>:"/\\|?*')
    name = name.lstrip(".")
    if not name:
        name = "unnamed_document"
    if len(name) > 200:
        base, ext = os.path.splitext(name)
        name = base[: 200 - len(ext)] + ext
    return name


__all__ = [
    "FALLBACK_MIME_TYPE",
    "detect_mime_type",
    "classify_mime_type",
    "format_file_size",
    "safe_filename",
]

"""Search helpers for usinadocs."""

from .text import matches_query, normalize_search_text

__all__ = ["matches_query", "normalize_search_text"]

"""Persistence adapters for the document store."""

from __future__ import annotations

from usinadocs.config.models import StorageSettings

from .base import ENTITY_KINDS, PersistenceAdapter, Record
from .blobs import BlobStore
from .database import DatabaseAdapter
from .local import LocalAdapter


def build_adapter(settings: StorageSettings) -> PersistenceAdapter:
    """Return the adapter selected by ``settings.backend`` (not yet opened)."""
    if settings.backend == "local":
        return LocalAdapter(settings.resolved_state_dir())
    return DatabaseAdapter(
        settings.resolved_database_url(),
        settings.resolved_blob_dir(),
        echo=settings.echo_sql,
    )


__all__ = [
    "ENTITY_KINDS",
    "PersistenceAdapter",
    "Record",
    "BlobStore",
    "DatabaseAdapter",
    "LocalAdapter",
    "build_adapter",
]

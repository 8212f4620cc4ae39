"""Abstract persistence contract shared by every storage backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping

from usinadocs.store.models import EntityKind, FileReference

ENTITY_KINDS: tuple[EntityKind, ...] = ("sectors", "folders", "documents")

Record = Dict[str, Any]


class PersistenceAdapter(ABC):
    """CRUD primitives per entity table plus file content storage.

    Records are plain JSON-compatible dictionaries with snake_case keys that
    mirror the entity models. Every backend failure surfaces as
    :class:`~usinadocs.store.errors.PersistenceError`.

    Attributes:
        durable: Whether file references survive the session.
        cascades: Whether removing a sector or folder also removes dependent
            records inside the backend.
    """

    durable: bool = False
    cascades: bool = False

    def __init__(self) -> None:
        self._is_new = False

    @property
    def is_new(self) -> bool:
        """Return True when :meth:`open` had to create the backing store."""
        return self._is_new

    @abstractmethod
    def open(self) -> None:
        """Prepare the backing store; safe to call more than once."""

    def close(self) -> None:
        """Release resources held by the adapter."""

    @abstractmethod
    def fetch_all(self, kind: EntityKind) -> List[Record]:
        """Return every stored record of ``kind``."""

    @abstractmethod
    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> Record:
        """Persist ``record`` and return the canonical stored copy."""

    @abstractmethod
    def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Apply a partial update and return the stored copy.

        Raises:
            RecordNotFoundError: If ``record_id`` is not stored.
        """

    @abstractmethod
    def remove(self, kind: EntityKind, record_id: str) -> None:
        """Delete a record.

        Raises:
            RecordNotFoundError: If ``record_id`` is not stored.
        """

    @abstractmethod
    def store_file(
        self,
        data: bytes,
        *,
        file_name: str,
        mime_type: str,
        sector_id: str,
    ) -> FileReference:
        """Store content and return a reference the adapter can resolve later."""

    @abstractmethod
    def release_file(self, reference: FileReference) -> None:
        """Delete stored content; unknown references are ignored."""

    @abstractmethod
    def resolve_file(self, reference: FileReference) -> bytes | None:
        """Return stored content, or ``None`` when it is no longer available."""

    def __enter__(self) -> "PersistenceAdapter":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["ENTITY_KINDS", "PersistenceAdapter", "Record"]

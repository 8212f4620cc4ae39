"""Entity store holding sectors, folders, and documents for one session."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from usinadocs.search import matches_query, normalize_search_text

from .content import classify_mime_type, detect_mime_type
from .errors import (
    ImmutableFieldError,
    InvalidReferenceError,
    InvalidValueError,
    PersistenceError,
    RecordNotFoundError,
)
from .models import (
    DEFAULT_SECTORS,
    MUTABLE_FIELDS,
    Document,
    DocumentType,
    EntityKind,
    FileReference,
    Folder,
    SearchResults,
    Sector,
)
from .tree import FolderIndex

if TYPE_CHECKING:
    from usinadocs.persistence.base import PersistenceAdapter
    from usinadocs.session.models import Identity

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _new_id() -> str:
    return str(uuid.uuid4())


class DocumentStore:
    """In-memory authoritative collections that write through to an adapter.

    Every mutation persists first and touches memory only once the adapter
    call succeeded, so a :class:`PersistenceError` leaves the collections as
    they were. Creation methods return the new entity or ``None`` on failure;
    update and delete methods return whether a change was applied. Unknown
    ids are a silent no-op.

    A store built without an identity holds no data and ignores mutations.
    """

    def __init__(
        self,
        adapter: "PersistenceAdapter",
        identity: Optional["Identity"],
        *,
        seed_defaults: bool = True,
    ) -> None:
        self._adapter = adapter
        self._identity = identity
        self._seed_defaults = seed_defaults
        self._sectors: Dict[str, Sector] = {}
        self._folders = FolderIndex()
        self._documents: Dict[str, Document] = {}
        self._loaded = False

    # Collections ------------------------------------------------------

    @property
    def identity(self) -> Optional["Identity"]:
        """Return the identity stamped on new records, or ``None`` when inert."""
        return self._identity

    @property
    def adapter(self) -> "PersistenceAdapter":
        """Return the persistence adapter the store writes through."""
        return self._adapter

    @property
    def is_loaded(self) -> bool:
        """Return True once :meth:`load` has populated the collections."""
        return self._loaded

    @property
    def sectors(self) -> List[Sector]:
        """Return a snapshot list of all sectors in load order."""
        return list(self._sectors.values())

    @property
    def folders(self) -> List[Folder]:
        """Return a snapshot list of every folder across all sectors."""
        return list(self._folders)

    @property
    def documents(self) -> List[Document]:
        """Return a snapshot list of every document across all folders."""
        return list(self._documents.values())

    def get_sector(self, sector_id: str) -> Sector | None:
        """Look up a sector by id.

        Args:
            sector_id: Identifier of the sector.

        Returns:
            Sector | None: The sector, or ``None`` when it is not loaded.
        """
        return self._sectors.get(sector_id)

    def get_folder(self, folder_id: str) -> Folder | None:
        """Look up a folder by id.

        Args:
            folder_id: Identifier of the folder.

        Returns:
            Folder | None: The folder, or ``None`` when it is not loaded.
        """
        return self._folders.get(folder_id)

    def get_document(self, document_id: str) -> Document | None:
        """Look up a document by id.

        Args:
            document_id: Identifier of the document.

        Returns:
            Document | None: The document, or ``None`` when it is not loaded.
        """
        return self._documents.get(document_id)

    # Lifecycle --------------------------------------------------------

    def load(self) -> None:
        """Load all three collections from the adapter.

        New backing stores are seeded with the default sectors once. Without an
        identity the collections stay empty.

        Raises:
            PersistenceError: If the adapter cannot be read; the previous
                collections are kept in that case.
        """
        if self._identity is None:
            self.clear()
            self._loaded = True
            return

        self._adapter.open()
        sectors = [Sector.model_validate(row) for row in self._adapter.fetch_all("sectors")]
        if not sectors and self._seed_defaults and self._adapter.is_new:
            sectors = self._seed_default_sectors()
        self._seed_defaults = False
        folders = [Folder.model_validate(row) for row in self._adapter.fetch_all("folders")]
        documents = [Document.model_validate(row) for row in self._adapter.fetch_all("documents")]

        self._sectors = {sector.id: sector for sector in sectors}
        self._folders.rebuild(folders)
        self._documents = {document.id: document for document in documents}
        self._loaded = True
        LOGGER.info(
            "Loaded %d sectors, %d folders, %d documents",
            len(self._sectors),
            len(self._folders),
            len(self._documents),
        )

    refresh = load

    def clear(self) -> None:
        """Drop the in-memory collections without touching persisted data."""
        self._sectors = {}
        self._folders.clear()
        self._documents = {}
        self._loaded = False

    def _seed_default_sectors(self) -> List[Sector]:
        seeded: List[Sector] = []
        for name, icon in DEFAULT_SECTORS:
            sector = self._insert(
                "sectors",
                Sector,
                Sector(id=_new_id(), name=name, icon=icon, created_by=self._owner_id()),
            )
            if sector is not None:
                seeded.append(sector)
        LOGGER.info("Seeded %d default sectors", len(seeded))
        return seeded

    # Sectors ----------------------------------------------------------

    def add_sector(self, name: str, icon: str, color: Optional[str] = None) -> Sector | None:
        """Create and persist a sector owned by the session identity."""
        if self._identity is None:
            return None
        sector = Sector(
            id=_new_id(),
            name=name,
            icon=icon,
            color=color or None,
            created_by=self._owner_id(),
        )
        stored = self._insert("sectors", Sector, sector)
        if stored is not None:
            self._sectors[stored.id] = stored
            LOGGER.info("Created sector %s (%s)", stored.name, stored.id)
        return stored

    def update_sector(self, sector_id: str, updates: Mapping[str, Any]) -> bool:
        """Apply partial ``name``/``icon``/``color`` updates to a sector."""
        updated = self._update("sectors", self._sectors.get(sector_id), updates)
        if updated is None:
            return False
        self._sectors[sector_id] = updated
        return True

    def delete_sector(self, sector_id: str) -> bool:
        """Delete a sector with all of its folders and documents.

        Content of every document in the sector is released first. Adapters
        that do not cascade get explicit removals of the dependent records,
        deepest folders first.
        """
        if self._identity is None or sector_id not in self._sectors:
            return False

        documents = [doc for doc in self._documents.values() if doc.sector_id == sector_id]
        self._release_all(documents)
        folders = self._folders.in_sector(sector_id)

        try:
            if not self._adapter.cascades:
                by_depth = sorted(
                    folders, key=lambda folder: len(self._folders.ancestry(folder.id)), reverse=True
                )
                self._remove_dependents(documents, [folder.id for folder in by_depth])
            self._remove_record("sectors", sector_id)
        except PersistenceError as exc:
            LOGGER.error("Failed to delete sector %s: %s", sector_id, exc)
            return False

        del self._sectors[sector_id]
        for folder in folders:
            self._folders.discard(folder.id)
        self._drop_documents(doc.id for doc in documents)
        LOGGER.info(
            "Deleted sector %s with %d folders and %d documents",
            sector_id,
            len(folders),
            len(documents),
        )
        return True

    def get_sector_document_count(self, sector_id: str) -> int:
        """Count every document in a sector, across all of its folders.

        Args:
            sector_id: Identifier of the sector.

        Returns:
            int: Number of documents whose ``sector_id`` matches.
        """
        return sum(1 for doc in self._documents.values() if doc.sector_id == sector_id)

    # Folders ----------------------------------------------------------

    def add_folder(
        self,
        sector_id: str,
        name: str,
        parent_folder_id: Optional[str] = None,
    ) -> Folder | None:
        """Create a folder in ``sector_id``, optionally nested under a parent.

        Raises:
            InvalidReferenceError: If the sector or parent is unknown, or the
                parent belongs to another sector.
        """
        if self._identity is None:
            return None
        if sector_id not in self._sectors:
            raise InvalidReferenceError(f"Unknown sector {sector_id}")
        if parent_folder_id is not None:
            parent = self._folders.get(parent_folder_id)
            if parent is None:
                raise InvalidReferenceError(f"Unknown parent folder {parent_folder_id}")
            if parent.sector_id != sector_id:
                raise InvalidReferenceError(
                    f"Parent folder {parent_folder_id} belongs to sector {parent.sector_id}, "
                    f"not {sector_id}"
                )

        folder = Folder(
            id=_new_id(),
            sector_id=sector_id,
            parent_folder_id=parent_folder_id,
            name=name,
            created_by=self._owner_id(),
        )
        stored = self._insert("folders", Folder, folder)
        if stored is not None:
            self._folders.add(stored)
            LOGGER.info("Created folder %s (%s) in sector %s", stored.name, stored.id, sector_id)
        return stored

    def update_folder(self, folder_id: str, updates: Mapping[str, Any]) -> bool:
        """Rename a folder; ``name`` is the only mutable field."""
        updated = self._update("folders", self._folders.get(folder_id), updates)
        if updated is None:
            return False
        self._folders.add(updated)
        return True

    def delete_folder(self, folder_id: str) -> bool:
        """Delete a folder, every descendant folder, and their documents."""
        if self._identity is None:
            return False
        closure = self._folders.descendant_closure(folder_id)
        if not closure:
            return False

        in_closure = set(closure)
        documents = [doc for doc in self._documents.values() if doc.folder_id in in_closure]
        self._release_all(documents)

        try:
            if not self._adapter.cascades:
                self._remove_dependents(documents, list(reversed(closure[1:])))
            self._remove_record("folders", folder_id)
        except PersistenceError as exc:
            LOGGER.error("Failed to delete folder %s: %s", folder_id, exc)
            return False

        for member in closure:
            self._folders.discard(member)
        self._drop_documents(doc.id for doc in documents)
        LOGGER.info(
            "Deleted folder %s with %d subfolders and %d documents",
            folder_id,
            len(closure) - 1,
            len(documents),
        )
        return True

    def get_folders_by_parent(
        self, sector_id: str, parent_folder_id: Optional[str] = None
    ) -> List[Folder]:
        """Return folders of ``sector_id`` directly under ``parent_folder_id``."""
        return self._folders.by_parent(sector_id, parent_folder_id)

    def get_folder_document_count(self, folder_id: str) -> int:
        """Count documents directly inside ``folder_id``, excluding subfolders."""
        return sum(1 for doc in self._documents.values() if doc.folder_id == folder_id)

    def get_folder_path(self, folder_id: str) -> List[Folder]:
        """Return the folders from the sector root down to ``folder_id``."""
        return self._folders.ancestry(folder_id)

    # Documents --------------------------------------------------------

    def add_document(
        self,
        sector_id: str,
        folder_id: str,
        name: str,
        *,
        data: bytes,
        file_name: str,
        file_size: Optional[int] = None,
        mime_type: Optional[str] = None,
        description: Optional[str] = None,
        document_type: Optional[DocumentType] = None,
    ) -> Document | None:
        """Store ``data`` and create a document record referencing it.

        The MIME type is guessed from ``file_name`` when omitted, and the
        document type is derived from the MIME type. When the record cannot
        be persisted the stored content is released again.

        Raises:
            InvalidReferenceError: If the folder is unknown or belongs to a
                different sector than ``sector_id``.
            InvalidValueError: If a field such as ``file_size`` or
                ``document_type`` is invalid; nothing stays stored then.
        """
        if self._identity is None:
            return None
        folder = self._folders.get(folder_id)
        if folder is None:
            raise InvalidReferenceError(f"Unknown folder {folder_id}")
        if folder.sector_id != sector_id or sector_id not in self._sectors:
            raise InvalidReferenceError(
                f"Folder {folder_id} belongs to sector {folder.sector_id}, not {sector_id}"
            )

        mime = mime_type or detect_mime_type(file_name)
        try:
            reference = self._adapter.store_file(
                data, file_name=file_name, mime_type=mime, sector_id=sector_id
            )
        except PersistenceError as exc:
            LOGGER.error("Failed to store content for %s: %s", file_name, exc)
            return None

        try:
            document = Document(
                id=_new_id(),
                folder_id=folder_id,
                sector_id=sector_id,
                name=name,
                description=description or None,
                type=document_type or classify_mime_type(mime),
                file=reference,
                file_name=file_name,
                file_size=len(data) if file_size is None else file_size,
                mime_type=mime,
                created_by=self._owner_id(),
            )
        except ValidationError as exc:
            self._release(reference, file_name)
            raise InvalidValueError(f"Invalid document {name!r}: {exc}") from exc
        stored = self._insert("documents", Document, document)
        if stored is None:
            self._release(reference, file_name)
            return None
        self._documents[stored.id] = stored
        LOGGER.info("Created document %s (%s) in folder %s", stored.name, stored.id, folder_id)
        return stored

    def upload_file(
        self,
        path: Path | str,
        folder_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Document | None:
        """Read a local file and add it to ``folder_id``.

        Raises:
            InvalidReferenceError: If the folder is unknown.
            OSError: If the file cannot be read.
        """
        folder = self._folders.get(folder_id)
        if folder is None:
            raise InvalidReferenceError(f"Unknown folder {folder_id}")
        source = Path(path)
        data = source.read_bytes()
        return self.add_document(
            folder.sector_id,
            folder_id,
            name or source.stem,
            data=data,
            file_name=source.name,
            description=description,
        )

    def update_document(self, document_id: str, updates: Mapping[str, Any]) -> bool:
        """Update ``name`` and ``description``; content and type are immutable."""
        updated = self._update("documents", self._documents.get(document_id), updates)
        if updated is None:
            return False
        self._documents[document_id] = updated
        return True

    def delete_document(self, document_id: str) -> bool:
        """Release a document's content and delete its record."""
        if self._identity is None:
            return False
        document = self._documents.get(document_id)
        if document is None:
            return False

        self._release(document.file, document.file_name)
        try:
            self._remove_record("documents", document_id)
        except PersistenceError as exc:
            LOGGER.error("Failed to delete document %s: %s", document_id, exc)
            return False
        del self._documents[document_id]
        LOGGER.info("Deleted document %s", document_id)
        return True

    def get_documents_by_folder(self, folder_id: str) -> List[Document]:
        """Return documents directly inside ``folder_id``."""
        return [doc for doc in self._documents.values() if doc.folder_id == folder_id]

    def read_content(self, document_id: str) -> bytes | None:
        """Return a document's content, or ``None`` when it is unavailable."""
        document = self._documents.get(document_id)
        if document is None:
            return None
        try:
            return self._adapter.resolve_file(document.file)
        except PersistenceError as exc:
            LOGGER.warning("Content for document %s is unavailable: %s", document_id, exc)
            return None

    def content_available(self, document: Document) -> bool:
        """Return True when the document's content can still be read."""
        return self.read_content(document.id) is not None

    # Search -----------------------------------------------------------

    def search(self, query: str) -> SearchResults:
        """Case-insensitive substring search over the three collections.

        Sectors and folders match on name, documents on name or description.
        An empty query matches everything.
        """
        needle = normalize_search_text(query)
        return SearchResults(
            query=query,
            sectors=[s for s in self._sectors.values() if matches_query(needle, s.name)],
            folders=[f for f in self._folders if matches_query(needle, f.name)],
            documents=[
                d
                for d in self._documents.values()
                if matches_query(needle, d.name, d.description)
            ],
        )

    # Internal helpers -------------------------------------------------

    def _owner_id(self) -> str:
        assert self._identity is not None
        return self._identity.id

    def _insert(self, kind: EntityKind, model: type[ModelT], entity: BaseModel) -> ModelT | None:
        try:
            stored = self._adapter.insert(kind, entity.model_dump(mode="json"))
        except PersistenceError as exc:
            LOGGER.error("Failed to create %s record: %s", kind, exc)
            return None
        return model.model_validate(stored)

    def _update(
        self,
        kind: EntityKind,
        current: Optional[ModelT],
        updates: Mapping[str, Any],
    ) -> ModelT | None:
        disallowed = set(updates) - MUTABLE_FIELDS[kind]
        if disallowed:
            raise ImmutableFieldError(
                f"Cannot update {', '.join(sorted(disallowed))} on {kind}; "
                f"allowed fields: {', '.join(sorted(MUTABLE_FIELDS[kind]))}"
            )
        if self._identity is None or current is None:
            return None
        if not updates:
            return current

        try:
            updated = type(current).model_validate({**current.model_dump(), **updates})
        except ValidationError as exc:
            raise InvalidValueError(f"Invalid update for {kind} {current.id}: {exc}") from exc
        serialized = updated.model_dump(mode="json")
        try:
            self._adapter.update(kind, updated.id, {key: serialized[key] for key in updates})
        except PersistenceError as exc:
            LOGGER.error("Failed to update %s %s: %s", kind, updated.id, exc)
            return None
        return updated

    def _remove_record(self, kind: EntityKind, record_id: str) -> None:
        try:
            self._adapter.remove(kind, record_id)
        except RecordNotFoundError:
            LOGGER.debug("%s %s was already absent from storage", kind, record_id)

    def _remove_dependents(self, documents: Iterable[Document], folder_ids: Iterable[str]) -> None:
        for document in documents:
            self._remove_record("documents", document.id)
            self._documents.pop(document.id, None)
        for folder_id in folder_ids:
            self._remove_record("folders", folder_id)
            self._folders.discard(folder_id)

    def _drop_documents(self, document_ids: Iterable[str]) -> None:
        for document_id in document_ids:
            self._documents.pop(document_id, None)

    def _release_all(self, documents: Iterable[Document]) -> None:
        for document in documents:
            self._release(document.file, document.file_name)

    def _release(self, reference: FileReference, label: str) -> None:
        try:
            self._adapter.release_file(reference)
        except PersistenceError as exc:
            LOGGER.warning("Failed to release stored content for %s: %s", label, exc)


__all__ = ["DocumentStore"]

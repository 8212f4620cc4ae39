"""Entity models for sectors, folders, and documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DocumentType = Literal["pdf", "image", "doc"]
EntityKind = Literal["sectors", "folders", "documents"]


def utc_now() -> datetime:
    """Return the current UTC timestamp."""
    return datetime.now(timezone.utc)


class StoreModel(BaseModel):
    """Shared configuration for persisted entities."""

    model_config = ConfigDict(extra="forbid")


class DurableFile(StoreModel):
    """Content stored in object storage, resolvable across sessions."""

    kind: Literal["durable"] = "durable"
    locator: str


class TransientFile(StoreModel):
    """Content held only for the lifetime of the session that uploaded it."""

    kind: Literal["transient"] = "transient"
    session_ref: str


FileReference = Annotated[Union[DurableFile, TransientFile], Field(discriminator="kind")]


class Sector(StoreModel):
    """Top-level category owning folders and documents."""

    id: str
    name: str
    icon: str
    color: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str


class Folder(StoreModel):
    """Folder node; ``parent_folder_id`` is ``None`` for sector roots."""

    id: str
    sector_id: str
    parent_folder_id: Optional[str] = None
    name: str
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str


class Document(StoreModel):
    """Uploaded file plus metadata, located in exactly one folder.

    ``sector_id`` duplicates the owning folder's sector so sector-wide
    queries do not need to walk the folder tree.
    """

    id: str
    folder_id: str
    sector_id: str
    name: str
    description: Optional[str] = None
    type: DocumentType = "doc"
    file: FileReference
    file_name: str
    file_size: int = Field(ge=0)
    mime_type: str
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str

    @property
    def is_durable(self) -> bool:
        """Return True when the content reference survives the session."""
        return isinstance(self.file, DurableFile)


class SearchResults(StoreModel):
    """Independent per-collection matches for a search query."""

    query: str
    sectors: List[Sector] = Field(default_factory=list)
    folders: List[Folder] = Field(default_factory=list)
    documents: List[Document] = Field(default_factory=list)

    @property
    def total(self) -> int:
        """Return the number of matches across all three collections."""
        return len(self.sectors) + len(self.folders) + len(self.documents)


DEFAULT_SECTORS: tuple[tuple[str, str], ...] = (
    ("Geral", "Folder"),
    ("RH", "Users"),
    ("Financeiro", "DollarSign"),
    ("Marketing", "Megaphone"),
    ("TI", "Monitor"),
)

MUTABLE_FIELDS: dict[str, frozenset[str]] = {
    "sectors": frozenset({"name", "icon", "color"}),
    "folders": frozenset({"name"}),
    "documents": frozenset({"name", "description"}),
}


__all__ = [
    "DocumentType",
    "EntityKind",
    "DurableFile",
    "TransientFile",
    "FileReference",
    "Sector",
    "Folder",
    "Document",
    "SearchResults",
    "DEFAULT_SECTORS",
    "MUTABLE_FIELDS",
    "utc_now",
]

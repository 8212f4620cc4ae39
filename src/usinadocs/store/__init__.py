"""Document store: sectors, folders, and documents with cascade semantics."""

from .content import classify_mime_type, detect_mime_type, format_file_size
from .errors import (
    ImmutableFieldError,
    InvalidReferenceError,
    InvalidValueError,
    PersistenceError,
    RecordNotFoundError,
    StoreError,
)
from .models import (
    DEFAULT_SECTORS,
    Document,
    DocumentType,
    DurableFile,
    FileReference,
    Folder,
    SearchResults,
    Sector,
    TransientFile,
)
from .service import DocumentStore
from .tree import FolderIndex

__all__ = [
    "DocumentStore",
    "FolderIndex",
    "Sector",
    "Folder",
    "Document",
    "DocumentType",
    "DurableFile",
    "TransientFile",
    "FileReference",
    "SearchResults",
    "DEFAULT_SECTORS",
    "StoreError",
    "PersistenceError",
    "RecordNotFoundError",
    "InvalidReferenceError",
    "ImmutableFieldError",
    "InvalidValueError",
    "classify_mime_type",
    "detect_mime_type",
    "format_file_size",
]

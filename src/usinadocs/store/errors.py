"""Document store errors."""


class StoreError(Exception):
    """Base exception for document store operations."""


class PersistenceError(StoreError):
    """Raised when the backing adapter fails to read or write."""


class RecordNotFoundError(PersistenceError):
    """Raised by adapters when an update or removal targets an absent record."""


class InvalidReferenceError(StoreError):
    """Raised when a folder or document points at an inconsistent parent."""


class ImmutableFieldError(StoreError):
    """Raised when an update touches fields that cannot change after creation."""


class InvalidValueError(StoreError):
    """Raised when a field value fails entity validation."""

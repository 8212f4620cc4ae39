"""Directory-backed object storage for uploaded content."""

from __future__ import annotations

import hashlib
import logging
import uuid
from pathlib import Path, PurePosixPath

from usinadocs.store.content import safe_filename
from usinadocs.store.errors import PersistenceError
from usinadocs.store.models import utc_now

LOGGER = logging.getLogger(__name__)


class BlobStore:
    """Store content under ``<root>/<sector_id>/<timestamp>_<name>``.

    The path relative to ``root`` is the durable locator recorded on the
    document, so moving the whole directory keeps every locator valid.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def put(self, data: bytes, *, file_name: str, sector_id: str) -> str:
        """Write ``data`` and return its locator.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        stamp = utc_now().strftime("%Y%m%d_%H%M%S")
        unique = f"{stamp}_{uuid.uuid4().hex[:8]}_{safe_filename(file_name)}"
        locator = str(PurePosixPath(safe_filename(sector_id), unique))
        target = self._path_for(locator)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise PersistenceError(f"Failed to store {file_name}: {exc}") from exc

        digest = hashlib.sha256(data).hexdigest()[:12]
        LOGGER.info("Stored %s (%d bytes, sha256=%s)", locator, len(data), digest)
        return locator

    def get(self, locator: str) -> bytes | None:
        """Return stored bytes, or ``None`` when the object is missing."""
        path = self._path_for(locator)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Failed to read {locator}: {exc}") from exc

    def delete(self, locator: str) -> bool:
        """Remove the object at ``locator``; return False when it was absent."""
        path = self._path_for(locator)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise PersistenceError(f"Failed to delete {locator}: {exc}") from exc
        LOGGER.info("Deleted stored object %s", locator)
        return True

    def _path_for(self, locator: str) -> Path:
        relative = PurePosixPath(locator)
        if relative.is_absolute() or ".." in relative.parts:
            raise PersistenceError(f"Invalid storage locator: {locator}")
        return self._root.joinpath(*relative.parts)


__all__ = ["BlobStore"]

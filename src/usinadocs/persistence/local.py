"""Local-only persistence backed by JSON files in the state directory."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping

from usinadocs.store.errors import PersistenceError, RecordNotFoundError
from usinadocs.store.models import EntityKind, FileReference, TransientFile

from .base import ENTITY_KINDS, PersistenceAdapter, Record

LOGGER = logging.getLogger(__name__)


class LocalAdapter(PersistenceAdapter):
    """Persist entity tables as JSON arrays and keep file content in memory.

    Each table lives in ``<state_dir>/<kind>.json`` and is rewritten whole on
    every write. Uploaded content is held in a dictionary owned by this
    adapter instance, so references are transient: once the process exits,
    documents still exist but their content is unavailable. Nothing cascades,
    the document store removes dependent records itself.
    """

    durable = False
    cascades = False

    def __init__(self, state_dir: Path) -> None:
        super().__init__()
        self._state_dir = Path(state_dir)
        self._tables: Dict[str, List[Record]] = {}
        self._blobs: Dict[str, bytes] = {}
        self._opened = False

    @property
    def state_dir(self) -> Path:
        """Return the directory holding the JSON tables."""
        return self._state_dir

    def open(self) -> None:
        """Create the state directory and read every table into memory.

        Raises:
            PersistenceError: If the directory cannot be created or a table
                file is unreadable.
        """
        if self._opened:
            return
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Cannot create state directory {self._state_dir}: {exc}"
            ) from exc
        self._is_new = not self._table_path("sectors").exists()
        for kind in ENTITY_KINDS:
            self._tables[kind] = self._read_table(kind)
        self._opened = True

    def close(self) -> None:
        """Forget cached tables and drop all transient content."""
        self._tables.clear()
        self._blobs.clear()
        self._opened = False

    def fetch_all(self, kind: EntityKind) -> List[Record]:
        """Return copies of every record in the ``kind`` table."""
        return [dict(record) for record in self._table(kind)]

    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> Record:
        """Append a record and rewrite the table.

        Args:
            kind: Entity table to write.
            record: Field values. An ``id`` is generated when missing.

        Returns:
            Record: The stored record.

        Raises:
            PersistenceError: If the id already exists or the write fails.
        """
        stored = dict(record)
        stored.setdefault("id", str(uuid.uuid4()))
        table = self._table(kind)
        if any(existing["id"] == stored["id"] for existing in table):
            raise PersistenceError(f"Duplicate {kind} id {stored['id']}")
        self._write_table(kind, [*table, stored])
        return dict(stored)

    def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Merge ``fields`` into an existing record.

        Args:
            kind: Entity table to write.
            record_id: Identifier of the record.
            fields: Values overriding the stored ones.

        Returns:
            Record: The merged record.

        Raises:
            RecordNotFoundError: If no record has ``record_id``.
        """
        table = self._table(kind)
        for position, existing in enumerate(table):
            if existing["id"] == record_id:
                merged = {**existing, **fields}
                rows = list(table)
                rows[position] = merged
                self._write_table(kind, rows)
                return dict(merged)
        raise RecordNotFoundError(f"No {kind} record with id {record_id}")

    def remove(self, kind: EntityKind, record_id: str) -> None:
        """Delete one record. Dependent records are left untouched."""
        table = self._table(kind)
        remaining = [existing for existing in table if existing["id"] != record_id]
        if len(remaining) == len(table):
            raise RecordNotFoundError(f"No {kind} record with id {record_id}")
        self._write_table(kind, remaining)

    def store_file(
        self,
        data: bytes,
        *,
        file_name: str,
        mime_type: str,
        sector_id: str,
    ) -> FileReference:
        """Keep ``data`` in memory and return a transient reference to it."""
        reference = TransientFile(session_ref=f"session:{uuid.uuid4().hex}")
        self._blobs[reference.session_ref] = bytes(data)
        LOGGER.debug("Holding %s (%d bytes) as %s", file_name, len(data), reference.session_ref)
        return reference

    def release_file(self, reference: FileReference) -> None:
        """Drop held content. Unknown and durable references are ignored."""
        if isinstance(reference, TransientFile):
            self._blobs.pop(reference.session_ref, None)

    def resolve_file(self, reference: FileReference) -> bytes | None:
        """Return held content, or ``None`` once it is gone."""
        if isinstance(reference, TransientFile):
            return self._blobs.get(reference.session_ref)
        return None

    def _table(self, kind: EntityKind) -> List[Record]:
        if not self._opened:
            raise PersistenceError("Local adapter is not open.")
        if kind not in self._tables:
            raise PersistenceError(f"Unknown entity kind: {kind}")
        return self._tables[kind]

    def _table_path(self, kind: str) -> Path:
        return self._state_dir / f"{kind}.json"

    def _read_table(self, kind: str) -> List[Record]:
        path = self._table_path(kind)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Invalid {kind} data in {path}: {exc}") from exc
        if not isinstance(data, list):
            raise PersistenceError(f"{path} must contain a JSON array.")
        return data

    def _write_table(self, kind: str, rows: List[Record]) -> None:
        path = self._table_path(kind)
        staging = path.with_suffix(".json.tmp")
        try:
            staging.write_text(json.dumps(rows, indent=2), encoding="utf-8")
            staging.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
        self._tables[kind] = rows


__all__ = ["LocalAdapter"]

"""Durable persistence on a relational database plus object storage.

Tables are declared with SQLAlchemy Core. Foreign keys cascade on delete, so
removing a sector or folder row removes dependent folders and documents
inside the database. SQLite only honours those constraints when
``PRAGMA foreign_keys`` is enabled, which a ``connect`` listener does for
every new connection.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    inspect,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from usinadocs.store.errors import PersistenceError, RecordNotFoundError
from usinadocs.store.models import DurableFile, EntityKind, FileReference

from .base import PersistenceAdapter, Record
from .blobs import BlobStore

LOGGER = logging.getLogger(__name__)

metadata = MetaData()

sectors_table = Table(
    "sectors",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("icon", String(64), nullable=False),
    Column("color", String(32), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("created_by", String(64), nullable=False),
)

folders_table = Table(
    "folders",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "sector_id",
        String(36),
        ForeignKey("sectors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "parent_folder_id",
        String(36),
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    ),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("created_by", String(64), nullable=False),
)

documents_table = Table(
    "documents",
    metadata,
    Column("id", String(36), primary_key=True),
    Column(
        "folder_id",
        String(36),
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "sector_id",
        String(36),
        ForeignKey("sectors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("type", String(16), nullable=False),
    Column("file_path", String(500), nullable=False),
    Column("file_name", String(255), nullable=False),
    Column("file_size", BigInteger, nullable=False),
    Column("mime_type", String(100), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("created_by", String(64), nullable=False),
)

TABLES: Dict[str, Table] = {
    "sectors": sectors_table,
    "folders": folders_table,
    "documents": documents_table,
}

_DATETIME = TypeAdapter(datetime)


class DatabaseAdapter(PersistenceAdapter):
    """Persist entities through SQLAlchemy and content through a :class:`BlobStore`."""

    durable = True
    cascades = True

    def __init__(self, database_url: str, blob_dir: Path, *, echo: bool = False) -> None:
        super().__init__()
        self._database_url = database_url
        self._echo = echo
        self._blobs = BlobStore(blob_dir)
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        """Return the open engine.

        Raises:
            PersistenceError: If the adapter has not been opened.
        """
        if self._engine is None:
            raise PersistenceError("Database adapter is not open.")
        return self._engine

    @property
    def blobs(self) -> BlobStore:
        """Return the object store holding document content."""
        return self._blobs

    def open(self) -> None:
        """Create the engine and any missing tables.

        SQLite connections get foreign keys switched on so the schema cascades.

        Raises:
            PersistenceError: If the database cannot be reached or created.
        """
        if self._engine is not None:
            return
        url = make_url(self._database_url)
        is_sqlite = url.get_backend_name() == "sqlite"
        if is_sqlite and url.database and url.database != ":memory:":
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        try:
            engine = create_engine(url, echo=self._echo)
            if is_sqlite:
                event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            self._is_new = not inspect(engine).has_table("sectors")
            metadata.create_all(engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Cannot open database {url!r}: {exc}") from exc

        self._engine = engine
        LOGGER.info(
            "Opened database %s (new=%s)", url.render_as_string(hide_password=True), self._is_new
        )

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def fetch_all(self, kind: EntityKind) -> List[Record]:
        """Return every row of ``kind``, documents newest first and the rest by name."""
        table = _table(kind)
        if kind == "documents":
            query = select(table).order_by(table.c.created_at.desc())
        else:
            query = select(table).order_by(table.c.name)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).mappings().all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch {kind}: {exc}") from exc
        return [_row_to_record(kind, row) for row in rows]

    def insert(self, kind: EntityKind, record: Mapping[str, Any]) -> Record:
        """Insert a row and return it as stored, defaults included.

        Args:
            kind: Entity table to write.
            record: Field values, including the ``id``.

        Returns:
            Record: The row read back inside the same transaction.

        Raises:
            PersistenceError: If the insert violates a constraint or fails.
        """
        table = _table(kind)
        values = _record_to_row(kind, record)
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(table).values(**values))
                selector = select(table).where(table.c.id == values["id"])
                row = conn.execute(selector).mappings().one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to insert into {kind}: {exc}") from exc
        return _row_to_record(kind, row)

    def update(self, kind: EntityKind, record_id: str, fields: Mapping[str, Any]) -> Record:
        """Write known columns of ``fields`` and return the updated row.

        Raises:
            RecordNotFoundError: If no row has ``record_id``.
            PersistenceError: If the statement fails.
        """
        table = _table(kind)
        values = {key: value for key, value in fields.items() if key in table.c and key != "id"}
        selector = select(table).where(table.c.id == record_id)
        try:
            with self.engine.begin() as conn:
                if values:
                    conn.execute(update(table).where(table.c.id == record_id).values(**values))
                row = conn.execute(selector).mappings().first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to update {kind} {record_id}: {exc}") from exc
        if row is None:
            raise RecordNotFoundError(f"No {kind} record with id {record_id}")
        return _row_to_record(kind, row)

    def remove(self, kind: EntityKind, record_id: str) -> None:
        """Delete one row. The schema cascades to dependent rows."""
        table = _table(kind)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(delete(table).where(table.c.id == record_id))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete {kind} {record_id}: {exc}") from exc
        if result.rowcount == 0:
            raise RecordNotFoundError(f"No {kind} record with id {record_id}")

    def store_file(
        self,
        data: bytes,
        *,
        file_name: str,
        mime_type: str,
        sector_id: str,
    ) -> FileReference:
        """Write ``data`` to the blob store under the sector prefix."""
        return DurableFile(locator=self._blobs.put(data, file_name=file_name, sector_id=sector_id))

    def release_file(self, reference: FileReference) -> None:
        if isinstance(reference, DurableFile):
            self._blobs.delete(reference.locator)

    def resolve_file(self, reference: FileReference) -> bytes | None:
        if isinstance(reference, DurableFile):
            return self._blobs.get(reference.locator)
        return None


def _enable_sqlite_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _table(kind: str) -> Table:
    try:
        return TABLES[kind]
    except KeyError:
        raise PersistenceError(f"Unknown entity kind: {kind}") from None


def _record_to_row(kind: str, record: Mapping[str, Any]) -> Dict[str, Any]:
    values = dict(record)
    if "created_at" in values:
        try:
            values["created_at"] = _DATETIME.validate_python(values["created_at"])
        except ValidationError as exc:
            raise PersistenceError(f"Invalid created_at for {kind}: {exc}") from exc
    if kind == "documents":
        reference = values.pop("file", None) or {}
        if reference.get("kind") != "durable":
            raise PersistenceError("The database backend only stores durable file references.")
        values["file_path"] = reference["locator"]
    table = _table(kind)
    unknown = set(values) - set(table.c.keys())
    if unknown:
        raise PersistenceError(f"Unknown {kind} columns: {sorted(unknown)}")
    return values


def _row_to_record(kind: str, row: Mapping[str, Any]) -> Record:
    record = dict(row)
    created_at = record.get("created_at")
    if isinstance(created_at, datetime) and created_at.tzinfo is None:
        record["created_at"] = created_at.replace(tzinfo=timezone.utc)
    if kind == "documents":
        record["file"] = {"kind": "durable", "locator": record.pop("file_path")}
    return record


__all__ = ["DatabaseAdapter", "metadata", "TABLES"]

"""Tests for the SQLAlchemy-backed adapter and its object storage."""

from __future__ import annotations

from datetime import timezone
from pathlib import Path

import pytest

from usinadocs.persistence import BlobStore, DatabaseAdapter
from usinadocs.store import (
    Document,
    DurableFile,
    Folder,
    PersistenceError,
    RecordNotFoundError,
    Sector,
    TransientFile,
)


@pytest.fixture
def adapter(tmp_path: Path):
    db = DatabaseAdapter(f"sqlite:///{tmp_path / 'nested' / 'docs.db'}", tmp_path / "blobs")
    db.open()
    yield db
    db.close()


def _seed(adapter: DatabaseAdapter) -> tuple[Sector, Folder, Folder, Document]:
    sector = Sector(id="s1", name="RH", icon="Users", created_by="1")
    parent = Folder(id="f1", sector_id="s1", name="Admissões", created_by="1")
    child = Folder(id="f2", sector_id="s1", parent_folder_id="f1", name="2024", created_by="1")
    document = Document(
        id="d1",
        folder_id="f2",
        sector_id="s1",
        name="Contrato",
        file=DurableFile(locator="s1/contrato.pdf"),
        file_name="contrato.pdf",
        file_size=12,
        mime_type="application/pdf",
        type="pdf",
        created_by="1",
    )
    for kind, entity in (
        ("sectors", sector),
        ("folders", parent),
        ("folders", child),
        ("documents", document),
    ):
        adapter.insert(kind, entity.model_dump(mode="json"))
    return sector, parent, child, document


def test_open_creates_schema_and_reports_new(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path / 'nested' / 'docs.db'}"
    first = DatabaseAdapter(url, tmp_path / "blobs")
    first.open()
    assert first.is_new is True
    assert (tmp_path / "nested" / "docs.db").exists()
    first.close()

    second = DatabaseAdapter(url, tmp_path / "blobs")
    second.open()
    assert second.is_new is False
    assert second.fetch_all("sectors") == []
    second.close()


def test_records_round_trip_with_file_reference(adapter: DatabaseAdapter) -> None:
    _, _, _, document = _seed(adapter)

    rows = adapter.fetch_all("documents")

    assert len(rows) == 1
    restored = Document.model_validate(rows[0])
    assert restored.file == DurableFile(locator="s1/contrato.pdf")
    assert restored.created_at.tzinfo is not None
    assert restored.created_at.astimezone(timezone.utc).replace(microsecond=0) == (
        document.created_at.replace(microsecond=0)
    )


def test_removing_sector_cascades_inside_database(adapter: DatabaseAdapter) -> None:
    _seed(adapter)

    adapter.remove("sectors", "s1")

    assert adapter.fetch_all("sectors") == []
    assert adapter.fetch_all("folders") == []
    assert adapter.fetch_all("documents") == []


def test_removing_folder_cascades_to_subfolders(adapter: DatabaseAdapter) -> None:
    _seed(adapter)

    adapter.remove("folders", "f1")

    assert [row["id"] for row in adapter.fetch_all("sectors")] == ["s1"]
    assert adapter.fetch_all("folders") == []
    assert adapter.fetch_all("documents") == []


def test_update_and_remove_unknown_records_raise(adapter: DatabaseAdapter) -> None:
    _seed(adapter)

    updated = adapter.update("folders", "f1", {"name": "Contratações"})
    assert updated["name"] == "Contratações"

    with pytest.raises(RecordNotFoundError):
        adapter.update("folders", "missing", {"name": "x"})
    with pytest.raises(RecordNotFoundError):
        adapter.remove("documents", "missing")


def test_foreign_key_violations_surface_as_persistence_errors(adapter: DatabaseAdapter) -> None:
    orphan = Folder(id="f9", sector_id="missing", name="Órfã", created_by="1")

    with pytest.raises(PersistenceError):
        adapter.insert("folders", orphan.model_dump(mode="json"))


def test_transient_references_are_rejected(adapter: DatabaseAdapter) -> None:
    _seed(adapter)
    record = Document(
        id="d2",
        folder_id="f1",
        sector_id="s1",
        name="Temp",
        file=TransientFile(session_ref="session:abc"),
        file_name="temp.txt",
        file_size=1,
        mime_type="text/plain",
        created_by="1",
    ).model_dump(mode="json")

    with pytest.raises(PersistenceError):
        adapter.insert("documents", record)


def test_file_content_lifecycle(adapter: DatabaseAdapter) -> None:
    reference = adapter.store_file(
        b"payload", file_name="../Relatório final.pdf", mime_type="application/pdf", sector_id="s1"
    )

    assert isinstance(reference, DurableFile)
    assert reference.locator.startswith("s1/")
    assert reference.locator.endswith("_Relatório final.pdf")
    assert adapter.resolve_file(reference) == b"payload"

    adapter.release_file(reference)
    assert adapter.resolve_file(reference) is None
    adapter.release_file(reference)
    assert adapter.resolve_file(TransientFile(session_ref="session:x")) is None


def test_blob_store_rejects_escaping_locators(tmp_path: Path) -> None:
    blobs = BlobStore(tmp_path / "blobs")

    with pytest.raises(PersistenceError):
        blobs.get("../outside.txt")
    with pytest.raises(PersistenceError):
        blobs.delete("/etc/passwd")
    assert blobs.delete("s1/never-stored.txt") is False


def test_closed_adapter_refuses_queries(tmp_path: Path) -> None:
    db = DatabaseAdapter(f"sqlite:///{tmp_path / 'docs.db'}", tmp_path / "blobs")

    with pytest.raises(PersistenceError):
        db.fetch_all("sectors")

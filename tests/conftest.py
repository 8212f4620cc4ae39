"""Shared fixtures for store and persistence tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import pytest

from usinadocs.persistence import DatabaseAdapter, LocalAdapter, PersistenceAdapter
from usinadocs.session import Identity
from usinadocs.store import DocumentStore

AdapterFactory = Callable[[], PersistenceAdapter]


@pytest.fixture
def identity() -> Identity:
    return Identity(id="1", email="admin@usinaedu.com.br", name="Administrador")


@pytest.fixture(params=["local", "database"])
def adapter_factory(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[AdapterFactory]:
    """Yield a factory building adapters over the same backing store.

    Every adapter handed out is closed on teardown, so tests can reopen the
    store to check what was actually persisted.
    """
    created: list[PersistenceAdapter] = []

    def _build() -> PersistenceAdapter:
        if request.param == "local":
            adapter: PersistenceAdapter = LocalAdapter(tmp_path / "state")
        else:
            adapter = DatabaseAdapter(f"sqlite:///{tmp_path / 'usinadocs.db'}", tmp_path / "blobs")
        created.append(adapter)
        return adapter

    yield _build

    for adapter in created:
        adapter.close()


@pytest.fixture
def store(adapter_factory: AdapterFactory, identity: Identity) -> DocumentStore:
    document_store = DocumentStore(adapter_factory(), identity, seed_defaults=False)
    document_store.load()
    return document_store

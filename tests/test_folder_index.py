"""Unit tests for the folder arena and its traversal helpers."""

from __future__ import annotations

import logging

import pytest

from usinadocs.store import Folder, FolderIndex


def _folder(folder_id: str, parent: str | None = None, sector: str = "s1") -> Folder:
    return Folder(
        id=folder_id,
        sector_id=sector,
        parent_folder_id=parent,
        name=folder_id.upper(),
        created_by="1",
    )


@pytest.fixture
def index() -> FolderIndex:
    return FolderIndex(
        [
            _folder("a"),
            _folder("b", "a"),
            _folder("c", "a"),
            _folder("d", "b"),
            _folder("e"),
            _folder("x", sector="s2"),
        ]
    )


def test_by_parent_filters_sector_and_keeps_order(index: FolderIndex) -> None:
    assert [f.id for f in index.by_parent("s1")] == ["a", "e"]
    assert [f.id for f in index.by_parent("s2")] == ["x"]
    assert [f.id for f in index.by_parent("s1", "a")] == ["b", "c"]
    assert index.by_parent("s1", "d") == []


def test_descendant_closure_lists_parents_first(index: FolderIndex) -> None:
    assert index.descendant_closure("a") == ["a", "b", "c", "d"]
    assert index.descendant_closure("d") == ["d"]
    assert index.descendant_closure("missing") == []


def test_descendant_closure_terminates_on_cycles(caplog: pytest.LogCaptureFixture) -> None:
    cyclic = FolderIndex([_folder("p", "q"), _folder("q", "p"), _folder("r", "p")])

    with caplog.at_level(logging.WARNING):
        closure = cyclic.descendant_closure("p")

    assert sorted(closure) == ["p", "q", "r"]
    assert closure[0] == "p"
    assert "cycle" in caplog.text


def test_ancestry_walks_to_root_and_stops_on_cycles(index: FolderIndex) -> None:
    assert [f.id for f in index.ancestry("d")] == ["a", "b", "d"]
    assert index.ancestry("missing") == []

    cyclic = FolderIndex([_folder("p", "q"), _folder("q", "p")])
    assert [f.id for f in cyclic.ancestry("p")] == ["q", "p"]


def test_add_replaces_and_relinks_on_parent_change(index: FolderIndex) -> None:
    index.add(_folder("d", "c"))

    assert [f.id for f in index.children("b")] == []
    assert [f.id for f in index.children("c")] == ["d"]
    assert len(index) == 6

    renamed = _folder("c", "a").model_copy(update={"name": "Renamed"})
    index.add(renamed)
    assert [f.name for f in index.children("a")] == ["B", "Renamed"]


def test_discard_and_in_sector(index: FolderIndex) -> None:
    removed = index.discard("b")

    assert removed is not None and removed.id == "b"
    assert "b" not in index
    assert [f.id for f in index.children("a")] == ["c"]
    assert index.discard("b") is None
    assert {f.id for f in index.in_sector("s1")} == {"a", "c", "d", "e"}

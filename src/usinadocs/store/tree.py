"""Folder arena with a parent-to-children index."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .models import Folder

LOGGER = logging.getLogger(__name__)


class FolderIndex:
    """Keep folders keyed by id plus a derived child lookup.

    The child map is keyed by parent folder id, with ``None`` collecting the
    root folders of every sector. Insertion order is preserved in both maps so
    listings follow the order the adapter returned.
    """

    def __init__(self, folders: Iterable[Folder] = ()) -> None:
        self._folders: Dict[str, Folder] = {}
        self._children: Dict[Optional[str], List[str]] = {}
        self.rebuild(folders)

    def __len__(self) -> int:
        return len(self._folders)

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self._folders

    def __iter__(self):
        """Iterate over a snapshot of the stored folders in insertion order."""
        return iter(list(self._folders.values()))

    def rebuild(self, folders: Iterable[Folder]) -> None:
        """Replace the arena contents and recompute the child lookup."""
        self._folders.clear()
        self._children.clear()
        for folder in folders:
            self.add(folder)

    def clear(self) -> None:
        """Drop every folder and the child lookup."""
        self._folders.clear()
        self._children.clear()

    def get(self, folder_id: str) -> Folder | None:
        """Return the folder stored under ``folder_id``, if any."""
        return self._folders.get(folder_id)

    def add(self, folder: Folder) -> None:
        """Insert ``folder`` or replace the stored copy with the same id."""
        previous = self._folders.get(folder.id)
        if previous is not None and previous.parent_folder_id != folder.parent_folder_id:
            self._unlink(previous)
            previous = None
        self._folders[folder.id] = folder
        if previous is None:
            self._children.setdefault(folder.parent_folder_id, []).append(folder.id)

    def discard(self, folder_id: str) -> Folder | None:
        """Remove a single folder; its children keep their parent pointer."""
        folder = self._folders.pop(folder_id, None)
        if folder is not None:
            self._unlink(folder)
        return folder

    def children(self, parent_folder_id: Optional[str]) -> List[Folder]:
        """Return direct children of ``parent_folder_id`` in insertion order."""
        return [self._folders[child] for child in self._children.get(parent_folder_id, [])]

    def by_parent(self, sector_id: str, parent_folder_id: Optional[str] = None) -> List[Folder]:
        """Return direct children of a parent, limited to one sector.

        Args:
            sector_id: Sector whose folders are listed.
            parent_folder_id: Parent folder id, or ``None`` for sector roots.

        Returns:
            List[Folder]: Matching folders in insertion order.
        """
        return [
            folder
            for folder in self.children(parent_folder_id)
            if folder.sector_id == sector_id
        ]

    def in_sector(self, sector_id: str) -> List[Folder]:
        """Return every folder of ``sector_id`` at any depth."""
        return [folder for folder in self._folders.values() if folder.sector_id == sector_id]

    def descendant_closure(self, folder_id: str) -> List[str]:
        """Return ``folder_id`` and every folder whose parent chain reaches it.

        The walk is breadth-first over the child lookup and tracks visited ids,
        so a parent cycle left behind by bad data cannot loop forever. The
        result lists parents before their children.

        Args:
            folder_id: Root of the subtree.

        Returns:
            List[str]: Folder ids in the closure, the root first. Empty when
            the root is unknown.
        """
        if folder_id not in self._folders:
            return []

        ordered: List[str] = [folder_id]
        visited = {folder_id}
        cursor = 0
        while cursor < len(ordered):
            current = ordered[cursor]
            cursor += 1
            for child in self._children.get(current, []):
                if child in visited:
                    LOGGER.warning("Folder cycle detected at %s; skipping revisit.", child)
                    continue
                visited.add(child)
                ordered.append(child)
        return ordered

    def ancestry(self, folder_id: str) -> List[Folder]:
        """Return the chain from the sector root down to ``folder_id``."""
        chain: List[Folder] = []
        seen: set[str] = set()
        current = self._folders.get(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            chain.append(current)
            if current.parent_folder_id is None:
                break
            current = self._folders.get(current.parent_folder_id)
        chain.reverse()
        return chain

    def _unlink(self, folder: Folder) -> None:
        siblings = self._children.get(folder.parent_folder_id)
        if siblings is None:
            return
        try:
            siblings.remove(folder.id)
        except ValueError:
            return
        if not siblings:
            del self._children[folder.parent_folder_id]


__all__ = ["FolderIndex"]

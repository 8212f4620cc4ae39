"""Helpers shared by the usinadocs CLI commands."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Any, Iterable, Sequence, TypeVar

from rich.table import Table

from usinadocs.config import UsinaConfig
from usinadocs.store import Document, DocumentStore, Folder, Sector, format_file_size

PACKAGE_LOGGER = "usinadocs"
LOG_FILENAME = "usinadocs.log"

EntityT = TypeVar("EntityT", Sector, Folder, Document)


class AmbiguousIdError(LookupError):
    """Raised when an id prefix matches more than one entity."""


def configure_logging(config: UsinaConfig) -> logging.Logger:
    """Attach a rotating file handler under the state directory.

    Handlers installed by earlier calls are replaced, so repeated invocations
    in one process (tests, shells) do not stack handlers.

    Args:
        config: Effective configuration supplying level, size, and location.

    Returns:
        logging.Logger: The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_usinadocs_handler", False):
            logger.removeHandler(handler)
            handler.close()

    state_dir = config.storage.resolved_state_dir()
    state_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        state_dir / LOG_FILENAME,
        maxBytes=config.logging.max_size_mb * 1024 * 1024,
        backupCount=config.logging.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._usinadocs_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(config.logging.level.upper())
    return logger


def resolve_entity_id(candidates: Iterable[EntityT], value: str, label: str) -> EntityT | None:
    """Find the entity whose id equals ``value`` or uniquely starts with it.

    Raises:
        AmbiguousIdError: If several ids share the prefix.
    """
    pool = list(candidates)
    for entity in pool:
        if entity.id == value:
            return entity
    matches = [entity for entity in pool if entity.id.startswith(value)]
    if len(matches) > 1:
        raise AmbiguousIdError(f"{label} id prefix '{value}' matches {len(matches)} entries.")
    return matches[0] if matches else None


def sector_payload(store: DocumentStore, sector: Sector) -> dict[str, Any]:
    payload = sector.model_dump(mode="json")
    payload["document_count"] = store.get_sector_document_count(sector.id)
    return payload


def folder_payload(store: DocumentStore, folder: Folder) -> dict[str, Any]:
    payload = folder.model_dump(mode="json")
    payload["document_count"] = store.get_folder_document_count(folder.id)
    payload["path"] = [entry.name for entry in store.get_folder_path(folder.id)]
    return payload


def document_payload(store: DocumentStore, document: Document) -> dict[str, Any]:
    payload = document.model_dump(mode="json")
    payload["content_available"] = store.content_available(document)
    return payload


def sectors_table(store: DocumentStore, sectors: Sequence[Sector]) -> Table:
    table = Table(title="Sectors")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Icon")
    table.add_column("Color")
    table.add_column("Documents", justify="right")
    for sector in sectors:
        table.add_row(
            sector.id[:8],
            sector.name,
            sector.icon,
            sector.color or "-",
            str(store.get_sector_document_count(sector.id)),
        )
    return table


def folders_table(
    store: DocumentStore, folders: Sequence[Folder], *, title: str = "Folders"
) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Subfolders", justify="right")
    table.add_column("Documents", justify="right")
    for folder in folders:
        table.add_row(
            folder.id[:8],
            folder.name,
            str(len(store.get_folders_by_parent(folder.sector_id, folder.id))),
            str(store.get_folder_document_count(folder.id)),
        )
    return table


def documents_table(
    store: DocumentStore, documents: Sequence[Document], *, title: str = "Documents"
) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Content")
    for document in documents:
        available = store.content_available(document)
        table.add_row(
            document.id[:8],
            document.name,
            document.type,
            document.file_name,
            format_file_size(document.file_size),
            "[green]available[/green]" if available else "[yellow]unavailable[/yellow]",
        )
    return table


def format_summary_line(command: str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary: {parts}.[/green]"


__all__ = [
    "AmbiguousIdError",
    "configure_logging",
    "resolve_entity_id",
    "sector_payload",
    "folder_payload",
    "document_payload",
    "sectors_table",
    "folders_table",
    "documents_table",
    "format_summary_line",
]

"""Command line interface for usinadocs."""

from __future__ import annotations

import difflib
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, NoReturn, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.tree import Tree

from usinadocs.cli_support import (
    AmbiguousIdError,
    configure_logging,
    document_payload,
    documents_table,
    folder_payload,
    folders_table,
    format_summary_line,
    resolve_entity_id,
    sector_payload,
    sectors_table,
)
from usinadocs.config import (
    ConfigError,
    ConfigManager,
    UsinaConfig,
    assign_nested,
    resolve_with_precedence,
)
from usinadocs.session import SessionContext, SessionError
from usinadocs.store import (
    Document,
    DocumentStore,
    Folder,
    ImmutableFieldError,
    InvalidReferenceError,
    InvalidValueError,
    PersistenceError,
    Sector,
    StoreError,
    format_file_size,
)

console = Console()

_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (InvalidReferenceError, "invalid_reference"),
    (ImmutableFieldError, "immutable_field"),
    (InvalidValueError, "invalid_value"),
    (PersistenceError, "persistence_error"),
    (StoreError, "store_error"),
    (AmbiguousIdError, "ambiguous_id"),
    (SessionError, "session_error"),
    (ConfigError, "config_error"),
    (OSError, "io_error"),
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> NoReturn:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _fail(exc: Exception, *, json_output: bool) -> NoReturn:
    for error_type, code in _ERROR_CODES:
        if isinstance(exc, error_type):
            _handle_cli_error(str(exc), code=code, json_output=json_output, original=exc)
    raise exc


def _emit_message(message: Any, *, quiet: bool, mode: str = "detail") -> None:
    if quiet and mode != "error":
        return
    console.print(message)


def _load_config(json_output: bool) -> UsinaConfig:
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        return manager.load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)


@contextmanager
def _session_scope(
    *, json_output: bool, require_identity: bool = True
) -> Iterator[tuple[UsinaConfig, SessionContext]]:
    """Load configuration, restore the remembered sign-in, and yield the session."""
    config = _load_config(json_output)
    configure_logging(config)
    session = SessionContext(config.storage, config.auth)
    try:
        try:
            identity = session.restore()
        except SessionError as exc:
            if require_identity:
                _fail(exc, json_output=json_output)
            # login and logout recover from a corrupt session file
            console.print(f"[yellow]Ignoring unreadable session: {escape(str(exc))}[/yellow]")
            identity = None
        except PersistenceError as exc:
            _fail(exc, json_output=json_output)
        if require_identity and identity is None:
            _handle_cli_error(
                "Not signed in. Run `usinadocs login` first.",
                code="not_authenticated",
                json_output=json_output,
            )
        yield config, session
    finally:
        session.close()


def _lookup(
    candidates: list[Any], value: str, label: str, *, json_output: bool
) -> Any:
    try:
        entity = resolve_entity_id(candidates, value, label)
    except AmbiguousIdError as exc:
        _fail(exc, json_output=json_output)
    if entity is None:
        _handle_cli_error(
            f"No {label.lower()} matches '{value}'.", code="not_found", json_output=json_output
        )
    return entity


def _require_sector(store: DocumentStore, value: str, *, json_output: bool) -> Sector:
    return _lookup(store.sectors, value, "Sector", json_output=json_output)


def _require_folder(store: DocumentStore, value: str, *, json_output: bool) -> Folder:
    return _lookup(store.folders, value, "Folder", json_output=json_output)


def _require_document(store: DocumentStore, value: str, *, json_output: bool) -> Document:
    return _lookup(store.documents, value, "Document", json_output=json_output)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="usinadocs")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """usinadocs organizes documents into sectors and folders.

    Sign in with `usinadocs login`, then manage sectors, folders, and
    documents, or search across all of them.
    """
    ctx.ensure_object(dict)
    if ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE:
        ctx.obj["quiet"] = quiet
    else:
        ctx.obj["quiet"] = None


def _quiet(ctx: click.Context, config: UsinaConfig) -> bool:
    explicit = ctx.find_root().obj.get("quiet") if ctx.find_root().obj else None
    return config.cli.quiet_default if explicit is None else bool(explicit)


# Session ------------------------------------------------------------------


@cli.command()
@click.option("--email", prompt=True, help="Account email.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.pass_context
def login(ctx: click.Context, email: str, password: str) -> None:
    """Sign in and remember the session for later commands."""
    with _session_scope(json_output=False, require_identity=False) as (config, session):
        try:
            identity = session.login(email, password)
        except PersistenceError as exc:
            _fail(exc, json_output=False)
        if identity is None:
            raise click.ClickException("Invalid email or password.")
        store = session.store
        _emit_message(
            f"[green]Signed in as {identity.name} <{identity.email}>.[/green]",
            quiet=_quiet(ctx, config),
        )
        _emit_message(
            format_summary_line(
                "Login",
                {
                    "sectors": len(store.sectors),
                    "folders": len(store.folders),
                    "documents": len(store.documents),
                },
            ),
            quiet=_quiet(ctx, config),
        )


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Sign out and discard the in-memory collections."""
    with _session_scope(json_output=False, require_identity=False) as (config, session):
        was_signed_in = session.identity is not None
        session.end()
    if was_signed_in:
        _emit_message("[green]Signed out.[/green]", quiet=_quiet(ctx, config))
    else:
        _emit_message("[yellow]No active session.[/yellow]", quiet=_quiet(ctx, config))


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit the identity as JSON.")
def whoami(json_output: bool) -> None:
    """Show the signed-in identity."""
    with _session_scope(json_output=json_output) as (_, session):
        identity = session.identity
        assert identity is not None
        if json_output:
            console.print_json(data=identity.model_dump(mode="json"))
            return
        console.print(f"{identity.name} <{identity.email}> (id {identity.id})")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit status information as JSON.")
def status(json_output: bool) -> None:
    """Summarize the store and the active storage backend."""
    with _session_scope(json_output=json_output) as (config, session):
        store = session.store
        payload = {
            "backend": config.storage.backend,
            "durable": store.adapter.durable,
            "user": session.identity.email if session.identity else None,
            "counts": {
                "sectors": len(store.sectors),
                "folders": len(store.folders),
                "documents": len(store.documents),
                "bytes": sum(document.file_size for document in store.documents),
            },
        }
        if json_output:
            console.print_json(data=payload)
            return
        counts = payload["counts"]
        console.print(f"Backend: {payload['backend']} (durable content: {payload['durable']})")
        console.print(f"Signed in as: {payload['user']}")
        console.print(
            format_summary_line(
                "Status",
                {
                    "sectors": counts["sectors"],
                    "folders": counts["folders"],
                    "documents": counts["documents"],
                    "size": format_file_size(counts["bytes"]),
                },
            )
        )


# Sectors ------------------------------------------------------------------


@cli.group()
def sector() -> None:
    """Manage top-level sectors."""


@sector.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit sectors as JSON.")
def sector_list(json_output: bool) -> None:
    """List sectors with their document counts."""
    with _session_scope(json_output=json_output) as (_, session):
        store = session.store
        if json_output:
            console.print_json(data={"sectors": [sector_payload(store, s) for s in store.sectors]})
            return
        console.print(sectors_table(store, store.sectors))


@sector.command("add")
@click.argument("name")
@click.option("--icon", default="Folder", show_default=True, help="Symbolic icon name.")
@click.option("--color", default=None, help="Optional display color.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created sector as JSON.")
@click.pass_context
def sector_add(
    ctx: click.Context, name: str, icon: str, color: Optional[str], json_output: bool
) -> None:
    """Create a sector called NAME."""
    with _session_scope(json_output=json_output) as (config, session):
        store = session.store
        created = store.add_sector(name, icon, color)
        if created is None:
            _handle_cli_error(
                f"Could not create sector '{name}'.",
                code="persistence_error",
                json_output=json_output,
            )
        if json_output:
            console.print_json(data=sector_payload(store, created))
            return
        _emit_message(
            f"[green]Created sector '{created.name}' ({created.id}).[/green]",
            quiet=_quiet(ctx, config),
        )


@sector.command("update")
@click.argument("sector_id")
@click.option("--name", default=None, help="New sector name.")
@click.option("--icon", default=None, help="New icon name.")
@click.option("--color", default=None, help="New color; pass an empty string to clear it.")
@click.pass_context
def sector_update(
    ctx: click.Context,
    sector_id: str,
    name: Optional[str],
    icon: Optional[str],
    color: Optional[str],
) -> None:
    """Update fields of SECTOR_ID; omitted fields are left unchanged."""
    updates: dict[str, Any] = {}
    if name is not None:
        updates["name"] = name
    if icon is not None:
        updates["icon"] = icon
    if color is not None:
        updates["color"] = color or None
    if not updates:
        raise click.UsageError("Provide at least one of --name, --icon, or --color.")

    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_sector(store, sector_id, json_output=False)
        if not store.update_sector(target.id, updates):
            raise click.ClickException(f"Could not update sector '{target.name}'.")
        _emit_message(f"[green]Updated sector {target.id}.[/green]", quiet=_quiet(ctx, config))


@sector.command("delete")
@click.argument("sector_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def sector_delete(ctx: click.Context, sector_id: str, yes: bool) -> None:
    """Delete SECTOR_ID with all of its folders and documents."""
    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_sector(store, sector_id, json_output=False)
        folder_count = len([folder for folder in store.folders if folder.sector_id == target.id])
        document_count = store.get_sector_document_count(target.id)
        if not yes:
            click.confirm(
                f"Delete sector '{target.name}' with {folder_count} folder(s) and "
                f"{document_count} document(s)?",
                abort=True,
            )
        if not store.delete_sector(target.id):
            raise click.ClickException(f"Could not delete sector '{target.name}'.")
        _emit_message(
            format_summary_line(
                "Delete",
                {"sector": target.name, "folders": folder_count, "documents": document_count},
            ),
            quiet=_quiet(ctx, config),
        )


# Folders ------------------------------------------------------------------


@cli.group()
def folder() -> None:
    """Manage folders inside sectors."""


@folder.command("list")
@click.argument("sector_id")
@click.option("--parent", "parent_id", default=None, help="List children of this folder.")
@click.option("--tree", "as_tree", is_flag=True, help="Render the whole sector as a tree.")
@click.option("--json", "json_output", is_flag=True, help="Emit folders as JSON.")
def folder_list(sector_id: str, parent_id: Optional[str], as_tree: bool, json_output: bool) -> None:
    """List folders of SECTOR_ID at the root or under --parent."""
    with _session_scope(json_output=json_output) as (_, session):
        store = session.store
        target = _require_sector(store, sector_id, json_output=json_output)
        parent: Optional[Folder] = None
        if parent_id is not None:
            parent = _require_folder(store, parent_id, json_output=json_output)
        folders = store.get_folders_by_parent(target.id, parent.id if parent else None)

        if json_output:
            console.print_json(data={"folders": [folder_payload(store, f) for f in folders]})
            return
        if as_tree:
            tree = Tree(f"[bold]{target.name}[/bold]")
            _add_tree_branches(store, tree, target.id, parent.id if parent else None, set())
            console.print(tree)
            return
        title = f"Folders in {target.name}" + (f" / {parent.name}" if parent else "")
        console.print(folders_table(store, folders, title=title))


def _add_tree_branches(
    store: DocumentStore, node: Tree, sector_id: str, parent_id: Optional[str], seen: set[str]
) -> None:
    for child in store.get_folders_by_parent(sector_id, parent_id):
        if child.id in seen:
            continue
        seen.add(child.id)
        count = store.get_folder_document_count(child.id)
        branch = node.add(f"{child.name} [dim]({count} docs, {child.id[:8]})[/dim]")
        _add_tree_branches(store, branch, sector_id, child.id, seen)


@folder.command("add")
@click.argument("sector_id")
@click.argument("name")
@click.option("--parent", "parent_id", default=None, help="Create inside this folder.")
@click.option("--json", "json_output", is_flag=True, help="Emit the created folder as JSON.")
@click.pass_context
def folder_add(
    ctx: click.Context, sector_id: str, name: str, parent_id: Optional[str], json_output: bool
) -> None:
    """Create folder NAME in SECTOR_ID."""
    with _session_scope(json_output=json_output) as (config, session):
        store = session.store
        target = _require_sector(store, sector_id, json_output=json_output)
        parent_folder_id = None
        if parent_id is not None:
            parent_folder_id = _require_folder(store, parent_id, json_output=json_output).id
        try:
            created = store.add_folder(target.id, name, parent_folder_id)
        except StoreError as exc:
            _fail(exc, json_output=json_output)
        if created is None:
            _handle_cli_error(
                f"Could not create folder '{name}'.",
                code="persistence_error",
                json_output=json_output,
            )
        if json_output:
            console.print_json(data=folder_payload(store, created))
            return
        _emit_message(
            f"[green]Created folder '{created.name}' ({created.id}).[/green]",
            quiet=_quiet(ctx, config),
        )


@folder.command("rename")
@click.argument("folder_id")
@click.argument("name")
@click.pass_context
def folder_rename(ctx: click.Context, folder_id: str, name: str) -> None:
    """Rename FOLDER_ID to NAME."""
    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_folder(store, folder_id, json_output=False)
        if not store.update_folder(target.id, {"name": name}):
            raise click.ClickException(f"Could not rename folder '{target.name}'.")
        _emit_message(
            f"[green]Renamed folder '{target.name}' to '{name}'.[/green]", quiet=_quiet(ctx, config)
        )


@folder.command("delete")
@click.argument("folder_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def folder_delete(ctx: click.Context, folder_id: str, yes: bool) -> None:
    """Delete FOLDER_ID, its subfolders, and their documents."""
    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_folder(store, folder_id, json_output=False)
        if not yes:
            click.confirm(f"Delete folder '{target.name}' and everything inside it?", abort=True)
        folders_before = len(store.folders)
        documents_before = len(store.documents)
        if not store.delete_folder(target.id):
            raise click.ClickException(f"Could not delete folder '{target.name}'.")
        _emit_message(
            format_summary_line(
                "Delete",
                {
                    "folder": target.name,
                    "folders": folders_before - len(store.folders),
                    "documents": documents_before - len(store.documents),
                },
            ),
            quiet=_quiet(ctx, config),
        )


# Documents ----------------------------------------------------------------


@cli.group()
def doc() -> None:
    """Upload, inspect, and manage documents."""


@doc.command("list")
@click.argument("folder_id")
@click.option("--json", "json_output", is_flag=True, help="Emit documents as JSON.")
def doc_list(folder_id: str, json_output: bool) -> None:
    """List documents directly inside FOLDER_ID."""
    with _session_scope(json_output=json_output) as (_, session):
        store = session.store
        target = _require_folder(store, folder_id, json_output=json_output)
        documents = store.get_documents_by_folder(target.id)
        if json_output:
            console.print_json(data={"documents": [document_payload(store, d) for d in documents]})
            return
        path = " / ".join(entry.name for entry in store.get_folder_path(target.id))
        console.print(documents_table(store, documents, title=f"Documents in {path}"))


@doc.command("upload")
@click.argument("folder_id")
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--name", default=None, help="Display name (single file only).")
@click.option("--description", default=None, help="Description applied to every file.")
@click.option("--json", "json_output", is_flag=True, help="Emit created documents as JSON.")
@click.pass_context
def doc_upload(
    ctx: click.Context,
    folder_id: str,
    files: tuple[Path, ...],
    name: Optional[str],
    description: Optional[str],
    json_output: bool,
) -> None:
    """Upload FILES into FOLDER_ID."""
    if name is not None and len(files) > 1:
        raise click.UsageError("--name can only be used with a single file.")

    with _session_scope(json_output=json_output) as (config, session):
        store = session.store
        target = _require_folder(store, folder_id, json_output=json_output)
        created: list[Document] = []
        failed: list[str] = []
        for path in files:
            try:
                document = store.upload_file(path, target.id, name=name, description=description)
            except (StoreError, OSError) as exc:
                _fail(exc, json_output=json_output)
            if document is None:
                failed.append(str(path))
            else:
                created.append(document)

        if json_output:
            console.print_json(
                data={
                    "documents": [document_payload(store, d) for d in created],
                    "failed": failed,
                }
            )
            if failed:
                raise SystemExit(1)
            return

        quiet = _quiet(ctx, config)
        for document in created:
            _emit_message(
                f"  [green]+[/green] {document.name} ({document.type}, "
                f"{format_file_size(document.file_size)})",
                quiet=quiet,
            )
        for path in failed:
            _emit_message(f"  [red]x[/red] {path}", quiet=quiet, mode="error")
        _emit_message(
            format_summary_line("Upload", {"uploaded": len(created), "failed": len(failed)}),
            quiet=quiet,
        )
        if failed:
            raise click.ClickException(f"{len(failed)} file(s) could not be uploaded.")


@doc.command("show")
@click.argument("document_id")
@click.option("--json", "json_output", is_flag=True, help="Emit the document as JSON.")
def doc_show(document_id: str, json_output: bool) -> None:
    """Show metadata for DOCUMENT_ID."""
    with _session_scope(json_output=json_output) as (_, session):
        store = session.store
        document = _require_document(store, document_id, json_output=json_output)
        payload = document_payload(store, document)
        if json_output:
            console.print_json(data=payload)
            return
        path = " / ".join(entry.name for entry in store.get_folder_path(document.folder_id))
        sector_entry = store.get_sector(document.sector_id)
        console.print(f"[bold]{document.name}[/bold] ({document.id})")
        console.print(f"Location: {sector_entry.name if sector_entry else '?'} / {path}")
        if document.description:
            console.print(f"Description: {document.description}")
        console.print(
            f"File: {document.file_name} • {format_file_size(document.file_size)} • "
            f"{document.mime_type}"
        )
        console.print(f"Created: {document.created_at.isoformat()} by {document.created_by}")
        if payload["content_available"]:
            console.print("[green]Content available.[/green]")
        else:
            console.print("[yellow]Content unavailable in this session.[/yellow]")


@doc.command("edit")
@click.argument("document_id")
@click.option("--name", default=None, help="New display name.")
@click.option("--description", default=None, help="New description; empty string clears it.")
@click.pass_context
def doc_edit(
    ctx: click.Context, document_id: str, name: Optional[str], description: Optional[str]
) -> None:
    """Edit the name or description of DOCUMENT_ID."""
    updates: dict[str, Any] = {}
    if name is not None:
        updates["name"] = name
    if description is not None:
        updates["description"] = description or None
    if not updates:
        raise click.UsageError("Provide --name and/or --description.")

    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_document(store, document_id, json_output=False)
        if not store.update_document(target.id, updates):
            raise click.ClickException(f"Could not update document '{target.name}'.")
        _emit_message(f"[green]Updated document {target.id}.[/green]", quiet=_quiet(ctx, config))


@doc.command("delete")
@click.argument("document_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def doc_delete(ctx: click.Context, document_id: str, yes: bool) -> None:
    """Delete DOCUMENT_ID and its stored content."""
    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_document(store, document_id, json_output=False)
        if not yes:
            click.confirm(f"Delete document '{target.name}'?", abort=True)
        if not store.delete_document(target.id):
            raise click.ClickException(f"Could not delete document '{target.name}'.")
        _emit_message(
            f"[green]Deleted document '{target.name}'.[/green]", quiet=_quiet(ctx, config)
        )


@doc.command("download")
@click.argument("document_id")
@click.argument("destination", type=click.Path(path_type=Path))
@click.pass_context
def doc_download(ctx: click.Context, document_id: str, destination: Path) -> None:
    """Write the content of DOCUMENT_ID to DESTINATION (file or directory)."""
    with _session_scope(json_output=False) as (config, session):
        store = session.store
        target = _require_document(store, document_id, json_output=False)
        data = store.read_content(target.id)
        if data is None:
            _emit_message(
                f"[yellow]Content for '{target.name}' is unavailable; it was uploaded in a "
                "session that has ended.[/yellow]",
                quiet=False,
            )
            return
        output = destination / target.file_name if destination.is_dir() else destination
        try:
            output.write_bytes(data)
        except OSError as exc:
            _fail(exc, json_output=False)
        _emit_message(
            f"[green]Saved {target.file_name} to {output} ({format_file_size(len(data))}).[/green]",
            quiet=_quiet(ctx, config),
        )


# Search -------------------------------------------------------------------


@cli.command()
@click.argument("query")
@click.option("--limit", type=int, default=None, help="Maximum rows per section.")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
def search(query: str, limit: Optional[int], json_output: bool) -> None:
    """Search sector, folder, and document names (and descriptions) for QUERY."""
    with _session_scope(json_output=json_output) as (config, session):
        store = session.store
        results = store.search(query)
        effective_limit = limit if limit is not None else config.cli.search_limit

        if json_output:
            console.print_json(
                data={
                    "query": query,
                    "counts": {
                        "sectors": len(results.sectors),
                        "folders": len(results.folders),
                        "documents": len(results.documents),
                        "total": results.total,
                    },
                    "sectors": [
                        sector_payload(store, s) for s in results.sectors[:effective_limit]
                    ],
                    "folders": [
                        folder_payload(store, f) for f in results.folders[:effective_limit]
                    ],
                    "documents": [
                        document_payload(store, d) for d in results.documents[:effective_limit]
                    ],
                }
            )
            return

        if results.sectors:
            console.print(sectors_table(store, results.sectors[:effective_limit]))
        if results.folders:
            console.print(
                folders_table(store, results.folders[:effective_limit], title="Matching folders")
            )
        if results.documents:
            console.print(
                documents_table(
                    store, results.documents[:effective_limit], title="Matching documents"
                )
            )
        console.print(
            format_summary_line(
                "Search",
                {
                    "query": repr(query),
                    "sectors": len(results.sectors),
                    "folders": len(results.folders),
                    "documents": len(results.documents),
                },
            )
        )


# Configuration --------------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage usinadocs configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'storage.backend'.")

    try:
        parsed_value = yaml.safe_load(value)
        file_data = manager.load_file_overrides()
        assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=UsinaConfig(), file_overrides=file_data)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()
    diff = [
        line
        for line in difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if not line.lstrip("+-").startswith("# Last updated:")
    ]
    if len(diff) > 2:
        console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes applied.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=UsinaConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ziptree.annotate import forest_stats
from ziptree.archive import (
    DecodeError,
    read_archive_entries_with_progress,
    read_archive_file,
)
from ziptree.compare_service import SnapshotComparison, compare_snapshots, compare_with_previous
from ziptree.config import ZipTreeConfig, load_config, save_config
from ziptree.filters import PathFilter, build_path_filter
from ziptree.models import FileNode, NodeStatus, Snapshot
from ziptree.owner import resolve_owner
from ziptree.render import (
    export_filename,
    filter_forest,
    format_file_size,
    render_export,
    render_tree,
)
from ziptree.snapshot_store import (
    SnapshotNotFoundError,
    create_snapshot,
    delete_snapshot,
    ensure_db,
    get_snapshot,
    list_snapshots,
    resolve_snapshot_id,
    update_snapshot,
)
from ziptree.tree_builder import build_tree


app = typer.Typer(help="ZipTree CLI")
console = Console()

STATUS_STYLES = {
    NodeStatus.NEW: ("+", "green"),
    NodeStatus.UPDATED: ("~", "yellow"),
    NodeStatus.EXISTING: ("", ""),
}


def _format_timestamp(value: str) -> str:
    try:
        return datetime.fromisoformat(value).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value


def _node_label(node: FileNode) -> Text:
    label = Text()
    marker, style = STATUS_STYLES.get(node.status, ("", ""))
    if marker:
        label.append(f"{marker} ", style=style)
    if node.is_directory:
        label.append(f"{node.name}/", style=f"bold blue {style}".strip())
    else:
        label.append(node.name, style=style)
        if node.size is not None:
            label.append(f"  {format_file_size(node.size)}", style="dim")
    return label


def _add_branches(branch: Tree, nodes: list[FileNode]) -> None:
    for node in nodes:
        child = branch.add(_node_label(node))
        if node.children:
            _add_branches(child, node.children)


def _render_forest(title: str, forest: list[FileNode], *, plain: bool = False) -> None:
    if not forest:
        console.print("[yellow]No entries to display.[/yellow]")
        return
    if plain:
        console.print(Text(render_tree(forest)), end="", soft_wrap=True)
        return
    root = Tree(Text(title, style="bold"))
    _add_branches(root, forest)
    console.print(root)


def _render_stats(forest: list[FileNode]) -> None:
    stats = forest_stats(forest)
    line = (
        f"{stats.files} file(s) | {stats.directories} folder(s) | "
        f"{format_file_size(stats.total_size)}"
    )
    if stats.new or stats.updated:
        line += f" | [green]{stats.new} new[/green] | [yellow]{stats.updated} updated[/yellow]"
    console.print(line)


def _render_changes(title: str, nodes: list[FileNode], style: str) -> None:
    if not nodes:
        return

    table = Table(title=Text(f"{title} ({len(nodes)})", style=style))
    table.add_column("Path")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")

    for node in nodes:
        table.add_row(
            Text(node.path),
            node.node_type.value,
            "" if node.size is None else format_file_size(node.size),
            "" if node.last_modified is None else node.last_modified.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)


def _render_comparison(comparison: SnapshotComparison, *, show_unchanged: bool = False) -> None:
    result = comparison.result
    console.print(
        f"From: [bold]{escape(comparison.old_snapshot.name)}[/bold] "
        f"({_format_timestamp(comparison.old_snapshot.created_at)})"
    )
    console.print(
        f"To:   [bold]{escape(comparison.new_snapshot.name)}[/bold] "
        f"({_format_timestamp(comparison.new_snapshot.created_at)})"
    )
    counts = result.counts()
    console.print(
        f"[green]+{counts['added']}[/green] added | "
        f"[yellow]~{counts['modified']}[/yellow] modified | "
        f"[red]-{counts['removed']}[/red] removed | "
        f"{counts['unchanged']} unchanged"
    )

    _render_changes("Added", result.added, "green")
    _render_changes("Modified", result.modified, "yellow")
    _render_changes("Removed", result.removed, "red")
    if show_unchanged:
        _render_changes("Unchanged", result.unchanged, "dim")

    if not result.has_changes:
        console.print("[green]No changes detected.[/green]")


def _read_forest(
    data: bytes,
    path_filter: PathFilter,
    contents: dict[str, str] | None = None,
) -> list[FileNode]:
    entries = read_archive_entries_with_progress(
        data, path_filter=path_filter, console=console, contents=contents
    )
    return build_tree(entries)


async def _initialize_workspace_async(root: Path) -> ZipTreeConfig:
    root = root.resolve()
    config = ZipTreeConfig(workspace_root=str(root), owner=resolve_owner())
    await ensure_db(config.snapshot_db_path)
    save_config(config, root)
    return config


@app.command()
def init() -> None:
    """Initialize a ZipTree workspace in the current directory."""
    config = asyncio.run(_initialize_workspace_async(Path.cwd()))
    console.print(f"[green]Initialized ZipTree[/green] at {config.workspace_root_path}")
    console.print(f"Snapshot DB: {config.snapshot_db_path}")
    console.print(f"Owner: {config.owner}")


@app.command()
def tree(
    archive: Path = typer.Argument(..., help="ZIP archive to read."),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Include glob pattern(s) for archive paths (repeatable).",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Exclude glob pattern(s) for archive paths (repeatable).",
    ),
    search: str | None = typer.Option(None, "--search", help="Only show paths containing this text."),
    plain: bool = typer.Option(False, "--plain", help="Print a plain box-drawing listing."),
) -> None:
    """Show the directory tree of a ZIP archive."""
    try:
        forest = _read_forest(
            read_archive_file(archive), build_path_filter(include, exclude, skip_junk=True)
        )
    except (OSError, DecodeError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    _render_forest(archive.name, filter_forest(forest, search or ""), plain=plain)
    _render_stats(forest)


async def _save_async(
    archive: Path,
    name: str,
    description: str | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
) -> int:
    try:
        config = load_config()
        forest = _read_forest(
            read_archive_file(archive), build_path_filter(include, exclude, skip_junk=True)
        )
        snapshot = await create_snapshot(
            config.snapshot_db_path,
            name=name,
            description=description,
            structure=forest,
            owner=resolve_owner(config.owner),
        )
    except KeyboardInterrupt:
        console.print("[yellow]Save interrupted.[/yellow] No snapshot was stored.")
        return 130
    except (OSError, DecodeError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    console.print(f"[green]Saved snapshot[/green] [bold]{escape(snapshot.name)}[/bold] ({snapshot.id[:12]})")
    _render_stats(snapshot.structure)
    return 0


@app.command()
def save(
    archive: Path = typer.Argument(..., help="ZIP archive to snapshot."),
    name: str = typer.Option(..., "--name", "-n", help="Snapshot name."),
    description: str | None = typer.Option(None, "--description", "-d", help="Optional description."),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Include glob pattern(s) for archive paths (repeatable).",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Exclude glob pattern(s) for archive paths (repeatable).",
    ),
) -> None:
    """Store the tree of a ZIP archive as a named snapshot."""
    raise typer.Exit(
        code=asyncio.run(
            _save_async(archive, name, description, tuple(include or ()), tuple(exclude or ()))
        )
    )


def _render_history(snapshots: list[Snapshot]) -> None:
    table = Table(title="Snapshots")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Files", justify="right")
    table.add_column("Created")

    for snapshot in snapshots:
        table.add_row(
            snapshot.id[:12],
            snapshot.name,
            snapshot.description or "",
            str(forest_stats(snapshot.structure).files),
            _format_timestamp(snapshot.created_at),
        )

    console.print(table)


async def _history_async(all_owners: bool) -> int:
    try:
        config = load_config()
        owner = None if all_owners else resolve_owner(config.owner)
        snapshots = await list_snapshots(config.snapshot_db_path, owner=owner)
    except FileNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    if not snapshots:
        console.print("[yellow]No snapshots yet.[/yellow] Use `zt save <archive> --name <name>`.")
        return 0
    _render_history(snapshots)
    return 0


@app.command()
def history(
    all_owners: bool = typer.Option(False, "--all", help="List snapshots of every owner."),
) -> None:
    """List stored snapshots, newest first."""
    raise typer.Exit(code=asyncio.run(_history_async(all_owners)))


async def _show_async(snapshot_id: str, compare_previous: bool, search: str, plain: bool) -> int:
    try:
        config = load_config()
        db_path = config.snapshot_db_path
        full_id = await resolve_snapshot_id(db_path, snapshot_id)
        snapshot = await get_snapshot(db_path, full_id)
        comparison = await compare_with_previous(db_path, full_id) if compare_previous else None
    except (FileNotFoundError, SnapshotNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    structure = snapshot.structure
    console.print(f"[bold]{escape(snapshot.name)}[/bold] ({_format_timestamp(snapshot.created_at)})")
    if snapshot.description:
        console.print(Text(snapshot.description))
    if compare_previous:
        if comparison is None:
            console.print("[yellow]No earlier snapshot to compare with.[/yellow]")
        else:
            structure = comparison.annotated_structure
            console.print(f"Compared with: [bold]{escape(comparison.old_snapshot.name)}[/bold]")

    _render_forest(snapshot.name, filter_forest(structure, search), plain=plain)
    _render_stats(structure)
    return 0


@app.command()
def show(
    snapshot_id: str = typer.Argument(..., help="Snapshot id or unique id prefix."),
    compare_previous: bool = typer.Option(
        False,
        "--compare-previous",
        help="Mark new/updated paths against the previous snapshot.",
    ),
    search: str = typer.Option("", "--search", help="Only show paths containing this text."),
    plain: bool = typer.Option(False, "--plain", help="Print a plain box-drawing listing."),
) -> None:
    """Show the tree stored in a snapshot."""
    raise typer.Exit(code=asyncio.run(_show_async(snapshot_id, compare_previous, search, plain)))


async def _compare_async(old_id: str, new_id: str, show_unchanged: bool, show_tree: bool) -> int:
    try:
        config = load_config()
        db_path = config.snapshot_db_path
        comparison = await compare_snapshots(
            db_path,
            await resolve_snapshot_id(db_path, old_id),
            await resolve_snapshot_id(db_path, new_id),
        )
    except (FileNotFoundError, SnapshotNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    _render_comparison(comparison, show_unchanged=show_unchanged)
    if show_tree:
        _render_forest(comparison.new_snapshot.name, comparison.annotated_structure)
    return 0


@app.command()
def compare(
    old_id: str = typer.Argument(..., help="Older snapshot id (or prefix)."),
    new_id: str = typer.Argument(..., help="Newer snapshot id (or prefix)."),
    show_unchanged: bool = typer.Option(False, "--unchanged", help="Also list unchanged paths."),
    show_tree: bool = typer.Option(False, "--tree", help="Print the annotated tree of the newer snapshot."),
) -> None:
    """Compare two snapshots by path, size and modification time."""
    raise typer.Exit(code=asyncio.run(_compare_async(old_id, new_id, show_unchanged, show_tree)))


async def _rename_async(snapshot_id: str, name: str | None, description: str | None) -> int:
    try:
        config = load_config()
        db_path = config.snapshot_db_path
        snapshot = await update_snapshot(
            db_path,
            await resolve_snapshot_id(db_path, snapshot_id),
            name=name,
            description=description,
        )
    except (FileNotFoundError, SnapshotNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    console.print(f"[green]Updated snapshot[/green] [bold]{escape(snapshot.name)}[/bold] ({snapshot.id[:12]})")
    return 0


@app.command()
def rename(
    snapshot_id: str = typer.Argument(..., help="Snapshot id or unique id prefix."),
    name: str | None = typer.Option(None, "--name", "-n", help="New snapshot name."),
    description: str | None = typer.Option(None, "--description", "-d", help="New description."),
) -> None:
    """Rename a snapshot or change its description."""
    raise typer.Exit(code=asyncio.run(_rename_async(snapshot_id, name, description)))


async def _delete_async(snapshot_id: str) -> int:
    try:
        config = load_config()
        db_path = config.snapshot_db_path
        full_id = await resolve_snapshot_id(db_path, snapshot_id)
        deleted = await delete_snapshot(db_path, full_id)
    except (FileNotFoundError, SnapshotNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    if not deleted:
        console.print(f"[red]Snapshot not found: {snapshot_id}[/red]")
        return 1
    console.print(f"[green]Deleted snapshot[/green] {full_id[:12]}")
    return 0


@app.command()
def delete(
    snapshot_id: str = typer.Argument(..., help="Snapshot id or unique id prefix."),
) -> None:
    """Delete a stored snapshot."""
    raise typer.Exit(code=asyncio.run(_delete_async(snapshot_id)))


def _write_text(output: Path, content: str) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as fh:
        fh.write(content)


async def _export_async(snapshot_id: str, output: Path | None) -> int:
    try:
        config = load_config()
        db_path = config.snapshot_db_path
        snapshot = await get_snapshot(db_path, await resolve_snapshot_id(db_path, snapshot_id))
    except (FileNotFoundError, SnapshotNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    generated_at = datetime.now()
    target = output or Path(export_filename(snapshot.name, generated_at=generated_at))
    _write_text(
        target,
        render_export(snapshot.structure, project_name=snapshot.name, generated_at=generated_at),
    )
    console.print(f"[green]Exported structure[/green] to {target}")
    return 0


@app.command()
def export(
    snapshot_id: str = typer.Argument(..., help="Snapshot id or unique id prefix."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Target text file."),
) -> None:
    """Write a snapshot's tree to a plain-text file."""
    raise typer.Exit(code=asyncio.run(_export_async(snapshot_id, output)))


@app.command()
def report(
    archive: Path = typer.Argument(..., help="ZIP archive to report on."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Target text file."),
    name: str | None = typer.Option(None, "--name", "-n", help="Project name for the header."),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Include glob pattern(s) for archive paths (repeatable).",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Exclude glob pattern(s) for archive paths (repeatable).",
    ),
) -> None:
    """Write an archive's tree plus the text of every file to a plain-text file."""
    path_filter = build_path_filter(include, exclude, skip_junk=True)
    try:
        contents: dict[str, str] = {}
        forest = _read_forest(read_archive_file(archive), path_filter, contents)
    except (OSError, DecodeError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1)

    project_name = name or archive.stem
    generated_at = datetime.now()
    target = output or Path(
        export_filename(project_name, generated_at=generated_at, with_contents=True)
    )
    _write_text(
        target,
        render_export(
            forest,
            project_name=project_name,
            contents=contents,
            generated_at=generated_at,
        ),
    )
    stats = forest_stats(forest)
    console.print(
        f"[green]Wrote report[/green] to {target} "
        f"({len(contents)}/{stats.files} file(s) with text content)"
    )


def main() -> None:
    app()

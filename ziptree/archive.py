from __future__ import annotations

import io
import zipfile
import zlib
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ziptree.filters import PathFilter
from ziptree.models import ArchiveEntry
from ziptree.tree_builder import split_segments

if TYPE_CHECKING:
    from rich.console import Console


CONTENT_READ_ERRORS = (
    RuntimeError,
    NotImplementedError,
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    ValueError,
)


class DecodeError(Exception):
    """Raised when bytes cannot be decoded as a ZIP archive."""


def _open_archive(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (
        zipfile.BadZipFile,
        zipfile.LargeZipFile,
        NotImplementedError,
        EOFError,
        OSError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Not a valid ZIP archive: {exc}") from exc


def _member_time(info: zipfile.ZipInfo) -> datetime | None:
    try:
        return datetime(*info.date_time)
    except ValueError:
        return None


def _member_bytes(archive: zipfile.ZipFile, info: zipfile.ZipInfo) -> bytes | None:
    if info.is_dir():
        return None
    try:
        return archive.read(info)
    except CONTENT_READ_ERRORS:
        return None


def _decode_text(raw: bytes, encoding: str) -> str | None:
    try:
        text = raw.decode(encoding)
    except UnicodeDecodeError:
        return None
    if "\x00" in text:
        return None
    return text


def _select_members(archive: zipfile.ZipFile, path_filter: PathFilter | None) -> list[zipfile.ZipInfo]:
    members: dict[tuple[str, bool], zipfile.ZipInfo] = {}
    for info in archive.infolist():
        if path_filter is not None and not path_filter.matches(info.filename):
            continue
        # Later duplicates win, like extraction would.
        members[("/".join(split_segments(info.filename)), info.is_dir())] = info
    return [members[key] for key in sorted(members)]


def read_archive_entries(
    data: bytes,
    *,
    path_filter: PathFilter | None = None,
    on_entry: Callable[[ArchiveEntry], None] | None = None,
    contents: dict[str, str] | None = None,
    encoding: str = "utf-8",
) -> list[ArchiveEntry]:
    """Decode ZIP bytes into entries sorted by path.

    When ``contents`` is given, the text of every readable member is stored
    in it under the normalized path, from the same decompression pass.
    """
    entries: list[ArchiveEntry] = []
    with _open_archive(data) as archive:
        for info in _select_members(archive, path_filter):
            raw = _member_bytes(archive, info)
            entry = ArchiveEntry(
                path=info.filename,
                is_directory=info.is_dir(),
                size=None if raw is None else len(raw),
                modified_time=_member_time(info),
            )
            if contents is not None and raw is not None:
                text = _decode_text(raw, encoding)
                if text is not None:
                    contents["/".join(split_segments(info.filename))] = text
            entries.append(entry)
            if on_entry is not None:
                on_entry(entry)
    return entries


def read_archive_file(path: Path) -> bytes:
    with path.open("rb") as fh:
        return fh.read()


def read_text_contents(
    data: bytes,
    *,
    path_filter: PathFilter | None = None,
    encoding: str = "utf-8",
) -> dict[str, str]:
    contents: dict[str, str] = {}
    read_archive_entries(data, path_filter=path_filter, contents=contents, encoding=encoding)
    return contents


def read_archive_entries_with_progress(
    data: bytes,
    *,
    path_filter: PathFilter | None = None,
    console: "Console | None" = None,
    contents: dict[str, str] | None = None,
) -> list[ArchiveEntry]:
    from rich.progress import (
        BarColumn,
        MofNCompleteColumn,
        Progress,
        SpinnerColumn,
        TextColumn,
        TimeElapsedColumn,
    )

    def _shorten_path(path: str, max_len: int = 64) -> str:
        if len(path) <= max_len:
            return path
        keep = max_len - 3
        head = keep // 2
        tail = keep - head
        return f"{path[:head]}...{path[-tail:]}"

    with _open_archive(data) as archive:
        total_entries = len(_select_members(archive, path_filter))
    if total_entries == 0:
        return []

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]Reading"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("{task.fields[path]}", markup=False),
        console=console,
        transient=True,
        expand=True,
    ) as progress:
        task_id = progress.add_task("read", total=total_entries, path="")

        def _advance(entry: ArchiveEntry) -> None:
            progress.update(task_id, advance=1, path=_shorten_path(entry.path))

        return read_archive_entries(
            data, path_filter=path_filter, on_entry=_advance, contents=contents
        )

from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime
from typing import Mapping

from ziptree.models import FileNode
from ziptree.tree_diff import iter_nodes


BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "

SECTION_RULE = "=" * 80
FILE_RULE = "-" * 80
MISSING_CONTENT_PLACEHOLDER = "[content not available]"
SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def _tree_lines(nodes: list[FileNode], prefix: str, lines: list[str]) -> None:
    last_index = len(nodes) - 1
    for index, node in enumerate(nodes):
        is_last = index == last_index
        lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{node.name}")
        if node.children:
            _tree_lines(node.children, prefix + (SPACE if is_last else PIPE), lines)


def render_tree(forest: list[FileNode]) -> str:
    lines: list[str] = []
    _tree_lines(forest, "", lines)
    return "".join(f"{line}\n" for line in lines)


def _section(title: str) -> str:
    return f"{SECTION_RULE}\n{title}\n{SECTION_RULE}\n"


def render_report(forest: list[FileNode], contents: Mapping[str, str]) -> str:
    """Render the tree followed by one section per file, in tree order.

    Files missing from ``contents`` get a placeholder instead of their text.
    """
    parts = [_section("TREE STRUCTURE"), "\n", render_tree(forest), "\n", _section("FILE CONTENTS")]
    for node in iter_nodes(forest):
        if node.is_directory:
            continue
        body = contents.get(node.path)
        if body is None:
            body = MISSING_CONTENT_PLACEHOLDER
        parts.append(f"\n{FILE_RULE}\nFile: {node.path}\n{FILE_RULE}\n")
        parts.append(body)
        if not body.endswith("\n"):
            parts.append("\n")
    return "".join(parts)


def render_export(
    forest: list[FileNode],
    *,
    project_name: str | None = None,
    contents: Mapping[str, str] | None = None,
    generated_at: datetime | None = None,
) -> str:
    generated_at = generated_at or datetime.now()
    title = "Project Structure & Contents" if contents is not None else "Project Structure"
    header = f"{title}\nGenerated on: {generated_at:%Y-%m-%d %H:%M:%S}\n"
    if project_name:
        header += f"Project: {project_name}\n"
    body = render_tree(forest) if contents is None else render_report(forest, contents)
    return f"{header}\n{body}"


def export_filename(
    project_name: str | None = None,
    *,
    generated_at: datetime | None = None,
    with_contents: bool = False,
) -> str:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d")
    kind = "contents" if with_contents else "structure"
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", (project_name or "").strip()).strip("-")
    return f"{stem or 'project'}-{kind}-{stamp}.txt"


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    value = float(size)
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {SIZE_UNITS[exponent]}"


def _matches(node: FileNode, term: str) -> bool:
    return term in node.name.lower() or term in node.path.lower()


def _filter_nodes(nodes: list[FileNode], term: str) -> list[FileNode]:
    kept: list[FileNode] = []
    for node in nodes:
        if node.children is None:
            if _matches(node, term):
                kept.append(node)
            continue
        if _matches(node, term):
            kept.append(node)
            continue
        children = _filter_nodes(node.children, term)
        if children:
            kept.append(replace(node, children=children))
    return kept


def filter_forest(forest: list[FileNode], term: str) -> list[FileNode]:
    """Keep nodes whose name or path contains ``term``, plus their ancestors."""
    term = term.strip().lower()
    if not term:
        return forest
    return _filter_nodes(forest, term)

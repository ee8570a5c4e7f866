from __future__ import annotations

from dataclasses import replace
from typing import Iterator

from ziptree.models import ComparisonResult, FileNode, NodeStatus


def iter_nodes(forest: list[FileNode]) -> Iterator[FileNode]:
    """Yield every node in pre-order, depth first."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        if node.children:
            stack.extend(reversed(node.children))


def flatten_forest(forest: list[FileNode]) -> dict[str, FileNode]:
    # Insertion order is pre-order; the first node wins on a duplicated path.
    path_map: dict[str, FileNode] = {}
    for node in iter_nodes(forest):
        path_map.setdefault(node.path, node)
    return path_map


def _metadata_differs(old: FileNode, new: FileNode) -> bool:
    return (
        old.node_type is not new.node_type
        or old.size != new.size
        or old.last_modified != new.last_modified
    )


def diff_forests(old_forest: list[FileNode], new_forest: list[FileNode]) -> ComparisonResult:
    old_map = flatten_forest(old_forest)
    new_map = flatten_forest(new_forest)

    added: list[FileNode] = []
    modified: list[FileNode] = []
    unchanged: list[FileNode] = []

    for path, node in new_map.items():
        old = old_map.get(path)
        if old is None:
            added.append(replace(node, status=NodeStatus.NEW))
        elif _metadata_differs(old, node):
            modified.append(replace(node, status=NodeStatus.UPDATED))
        else:
            unchanged.append(replace(node, status=NodeStatus.EXISTING))

    removed = [node for path, node in old_map.items() if path not in new_map]

    return ComparisonResult(
        added=added,
        modified=modified,
        removed=removed,
        unchanged=unchanged,
    )

from __future__ import annotations

from dataclasses import dataclass, replace

from ziptree.models import ComparisonResult, FileNode, NodeStatus
from ziptree.tree_diff import iter_nodes


@dataclass(slots=True)
class ForestStats:
    files: int = 0
    directories: int = 0
    new: int = 0
    updated: int = 0
    existing: int = 0
    total_size: int = 0


def status_map(comparison: ComparisonResult) -> dict[str, NodeStatus]:
    statuses: dict[str, NodeStatus] = {}
    for node in comparison.added:
        statuses[node.path] = NodeStatus.NEW
    for node in comparison.modified:
        statuses[node.path] = NodeStatus.UPDATED
    for node in comparison.unchanged:
        statuses[node.path] = NodeStatus.EXISTING
    return statuses


def _annotate_nodes(nodes: list[FileNode], statuses: dict[str, NodeStatus]) -> list[FileNode]:
    return [
        replace(
            node,
            status=statuses.get(node.path, NodeStatus.EXISTING),
            children=None if node.children is None else _annotate_nodes(node.children, statuses),
        )
        for node in nodes
    ]


def annotate_forest(forest: list[FileNode], comparison: ComparisonResult) -> list[FileNode]:
    """Return a copy of ``forest`` with every node's status taken from ``comparison``.

    Nodes the comparison does not mention default to ``existing``. The input
    forest is left untouched.
    """
    return _annotate_nodes(forest, status_map(comparison))


def forest_stats(forest: list[FileNode]) -> ForestStats:
    stats = ForestStats()
    for node in iter_nodes(forest):
        if node.is_directory:
            stats.directories += 1
        else:
            stats.files += 1
            stats.total_size += node.size or 0

        if node.status is NodeStatus.NEW:
            stats.new += 1
        elif node.status is NodeStatus.UPDATED:
            stats.updated += 1
        elif node.status is NodeStatus.EXISTING:
            stats.existing += 1
    return stats

from __future__ import annotations

from typing import Iterable

from ziptree.models import ArchiveEntry, FileNode, NodeType


def split_segments(path: str) -> list[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment]


def _directory_node(name: str, path: str) -> FileNode:
    return FileNode(name=name, node_type=NodeType.DIRECTORY, path=path, children=[])


def _promote_to_directory(node: FileNode) -> None:
    # A file path that later shows up as a parent ("a" then "a/b") becomes a folder.
    node.node_type = NodeType.DIRECTORY
    node.children = []
    node.size = None
    node.last_modified = None


def build_tree(entries: Iterable[ArchiveEntry]) -> list[FileNode]:
    """Build a forest from archive entries.

    Entries are expected in path order. Intermediate segments always become
    directories; the last segment is a directory only for directory markers.
    Size and modification time are kept on file nodes only.
    """
    forest: list[FileNode] = []
    nodes_by_path: dict[str, FileNode] = {}

    for entry in entries:
        segments = split_segments(entry.path)
        if not segments:
            continue

        siblings = forest
        current_path = ""
        last_index = len(segments) - 1

        for index, segment in enumerate(segments):
            current_path = f"{current_path}/{segment}" if current_path else segment
            is_leaf = index == last_index
            node = nodes_by_path.get(current_path)

            if node is None:
                if not is_leaf or entry.is_directory:
                    node = _directory_node(segment, current_path)
                else:
                    node = FileNode(
                        name=segment,
                        node_type=NodeType.FILE,
                        path=current_path,
                        size=entry.size,
                        last_modified=entry.modified_time,
                    )
                siblings.append(node)
                nodes_by_path[current_path] = node
            elif not is_leaf and not node.is_directory:
                _promote_to_directory(node)

            if node.children is not None:
                siblings = node.children

    return forest

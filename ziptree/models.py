from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class NodeStatus(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    EXISTING = "existing"


@dataclass(slots=True)
class ArchiveEntry:
    path: str
    is_directory: bool
    size: int | None = None
    modified_time: datetime | None = None


@dataclass(slots=True)
class FileNode:
    name: str
    node_type: NodeType
    path: str
    children: list[FileNode] | None = None
    status: NodeStatus | None = None
    size: int | None = None
    last_modified: datetime | None = None

    @property
    def is_directory(self) -> bool:
        return self.node_type is NodeType.DIRECTORY


@dataclass(slots=True)
class ComparisonResult:
    added: list[FileNode] = field(default_factory=list)
    modified: list[FileNode] = field(default_factory=list)
    removed: list[FileNode] = field(default_factory=list)
    unchanged: list[FileNode] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "removed": len(self.removed),
            "unchanged": len(self.unchanged),
        }


@dataclass(slots=True)
class Snapshot:
    id: str
    name: str
    structure: list[FileNode]
    owner: str
    created_at: str
    updated_at: str
    description: str | None = None


def node_to_dict(node: FileNode, *, include_status: bool = True) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": node.name,
        "type": node.node_type.value,
        "path": node.path,
    }
    if node.children is not None:
        payload["children"] = [
            node_to_dict(child, include_status=include_status) for child in node.children
        ]
    if include_status and node.status is not None:
        payload["status"] = node.status.value
    if node.size is not None:
        payload["size"] = node.size
    if node.last_modified is not None:
        payload["lastModified"] = node.last_modified.isoformat()
    return payload


def node_from_dict(data: dict[str, Any]) -> FileNode:
    node_type = NodeType(data["type"])
    children = data.get("children")
    if node_type is NodeType.DIRECTORY:
        children = [node_from_dict(child) for child in (children or [])]
    else:
        children = None

    status = data.get("status")
    last_modified = data.get("lastModified")
    size = data.get("size")
    return FileNode(
        name=str(data["name"]),
        node_type=node_type,
        path=str(data["path"]),
        children=children,
        status=None if status is None else NodeStatus(status),
        size=None if size is None else int(size),
        last_modified=None if last_modified is None else datetime.fromisoformat(last_modified),
    )


def forest_to_json(forest: list[FileNode]) -> str:
    # Status reflects a single comparison, so it is never persisted.
    return json.dumps([node_to_dict(node, include_status=False) for node in forest])


def forest_from_json(payload: str) -> list[FileNode]:
    return [node_from_dict(item) for item in json.loads(payload or "[]")]

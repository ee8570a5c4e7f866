# Unit tests for ziptree/models.py

import json

from ziptree.models import (
    NodeStatus,
    NodeType,
    forest_from_json,
    forest_to_json,
    node_from_dict,
    node_to_dict,
)


class TestNodeSerialization:
    """Tests for node_to_dict() / node_from_dict()"""

    def test_file_node_fields(self, file_node, stamp):
        node = file_node("a/b.txt", size=10, last_modified=stamp, status=NodeStatus.UPDATED)

        assert node_to_dict(node) == {
            "name": "b.txt",
            "type": "file",
            "path": "a/b.txt",
            "status": "updated",
            "size": 10,
            "lastModified": "2024-05-01T12:30:00",
        }

    def test_optional_fields_are_omitted(self, dir_node):
        assert node_to_dict(dir_node("empty")) == {
            "name": "empty",
            "type": "directory",
            "path": "empty",
            "children": [],
        }

    def test_from_dict_restores_nested_structure(self, dir_node, file_node, stamp):
        node = dir_node("src", [file_node("src/a.py", size=3, last_modified=stamp)])

        restored = node_from_dict(node_to_dict(node))

        assert restored == node
        assert restored.children[0].node_type is NodeType.FILE

    def test_file_children_are_ignored(self):
        node = node_from_dict({"name": "f", "type": "file", "path": "f", "children": []})

        assert node.children is None


class TestForestJson:
    """Tests for forest_to_json() / forest_from_json()"""

    def test_status_is_not_persisted(self, file_node):
        payload = forest_to_json([file_node("x", size=1, status=NodeStatus.NEW)])

        assert "status" not in json.loads(payload)[0]
        assert forest_from_json(payload)[0].status is None

    def test_empty_payload(self):
        assert forest_from_json("") == []
        assert forest_from_json("[]") == []

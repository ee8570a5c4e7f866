# Shared pytest fixtures for ZipTree tests

import io
import zipfile
from datetime import datetime

import pytest

from ziptree.config import ZipTreeConfig, save_config
from ziptree.models import FileNode, NodeType


DEFAULT_DATE_TIME = (2024, 5, 1, 12, 30, 0)


def _zip_bytes(files, date_time=DEFAULT_DATE_TIME):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            info = zipfile.ZipInfo(name, date_time=date_time)
            if name.endswith("/"):
                archive.writestr(info, b"")
                continue
            if isinstance(content, str):
                content = content.encode("utf-8")
            archive.writestr(info, content or b"", compress_type=zipfile.ZIP_DEFLATED)
    return buffer.getvalue()


@pytest.fixture
def make_zip():
    # Builds an in-memory ZIP from {name: content}; names ending in "/" are directories
    return _zip_bytes


@pytest.fixture
def zip_file(tmp_path, make_zip):
    # Writes a ZIP to disk and returns its path
    def _write(files, name="project.zip", date_time=DEFAULT_DATE_TIME):
        path = tmp_path / name
        path.write_bytes(make_zip(files, date_time=date_time))
        return path

    return _write


@pytest.fixture
def file_node():
    def _make(path, size=None, last_modified=None, status=None):
        return FileNode(
            name=path.rsplit("/", 1)[-1],
            node_type=NodeType.FILE,
            path=path,
            size=size,
            last_modified=last_modified,
            status=status,
        )

    return _make


@pytest.fixture
def dir_node():
    def _make(path, children=None, status=None):
        return FileNode(
            name=path.rsplit("/", 1)[-1],
            node_type=NodeType.DIRECTORY,
            path=path,
            children=list(children or []),
            status=status,
        )

    return _make


@pytest.fixture
def stamp():
    return datetime(2024, 5, 1, 12, 30, 0)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    # An initialized ZipTree workspace as the current directory
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ZIPTREE_OWNER", "tester")
    config = ZipTreeConfig(workspace_root=str(tmp_path), owner="tester")
    save_config(config, tmp_path)
    return config

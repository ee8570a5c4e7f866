# Integration tests for the `zt` command line

import asyncio

import pytest
from typer.testing import CliRunner

from ziptree import cli
from ziptree.archive import read_archive_file
from ziptree.cli import app
from ziptree.config import CONFIG_FILENAME, load_config
from ziptree.snapshot_store import list_snapshots


runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    # Keep rich from wrapping long temp paths in assertions
    monkeypatch.setattr(cli.console, "width", 200)


def _snapshots(config):
    return asyncio.run(list_snapshots(config.snapshot_db_path))


@pytest.fixture
def project_v1(zip_file):
    return zip_file({"a/": None, "a/b.txt": "0123456789", "c.txt": "12345"}, name="v1.zip")


@pytest.fixture
def project_v2(zip_file):
    return zip_file(
        {"a/": None, "a/b.txt": "0123456789!!", "d.txt": "new"},
        name="v2.zip",
    )


class TestInit:
    """Tests for `zt init`"""

    def test_creates_config_and_db(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ZIPTREE_OWNER", "tester")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0
        assert (tmp_path / CONFIG_FILENAME).exists()
        config = load_config(tmp_path)
        assert config.owner == "tester"
        assert config.snapshot_db_path.exists()


class TestTree:
    """Tests for `zt tree`"""

    def test_plain_listing(self, project_v1):
        result = runner.invoke(app, ["tree", str(project_v1), "--plain"])

        assert result.exit_code == 0
        assert "├── a\n│   └── b.txt\n└── c.txt\n" in result.output
        assert "2 file(s) | 1 folder(s)" in result.output

    def test_search_narrows_listing(self, project_v1):
        result = runner.invoke(app, ["tree", str(project_v1), "--plain", "--search", "b.txt"])

        assert result.exit_code == 0
        assert "└── a\n    └── b.txt\n" in result.output
        assert "c.txt" not in result.output

    def test_invalid_archive(self, tmp_path):
        bogus = tmp_path / "bogus.zip"
        bogus.write_bytes(b"not a zip")

        result = runner.invoke(app, ["tree", str(bogus)])

        assert result.exit_code == 1
        assert "Not a valid ZIP archive" in result.output

    def test_missing_archive(self, tmp_path):
        result = runner.invoke(app, ["tree", str(tmp_path / "absent.zip")])

        assert result.exit_code == 1


class TestSnapshotWorkflow:
    """Save, list, compare, export and delete snapshots"""

    def test_save_requires_init(self, tmp_path, monkeypatch, project_v1):
        monkeypatch.chdir(tmp_path)

        result = runner.invoke(app, ["save", str(project_v1), "--name", "v1"])

        assert result.exit_code == 1
        assert "zt init" in result.output

    def test_full_cycle(self, workspace, project_v1, project_v2, tmp_path):
        assert runner.invoke(app, ["save", str(project_v1), "--name", "v1"]).exit_code == 0
        assert runner.invoke(app, ["save", str(project_v2), "--name", "v2", "-d", "second"]).exit_code == 0

        newest, oldest = _snapshots(workspace)
        assert (newest.name, oldest.name) == ("v2", "v1")
        assert newest.owner == "tester"

        history = runner.invoke(app, ["history"])
        assert history.exit_code == 0
        assert "v1" in history.output
        assert "v2" in history.output

        compared = runner.invoke(app, ["compare", oldest.id[:12], newest.id[:12]])
        assert compared.exit_code == 0
        assert "+1 added" in compared.output
        assert "~1 modified" in compared.output
        assert "-1 removed" in compared.output

        shown = runner.invoke(app, ["show", newest.id, "--compare-previous", "--plain"])
        assert shown.exit_code == 0
        assert "Compared with: v1" in shown.output
        assert "1 new" in shown.output
        assert "1 updated" in shown.output

        target = tmp_path / "out" / "structure.txt"
        exported = runner.invoke(app, ["export", newest.id[:8], "-o", str(target)])
        assert exported.exit_code == 0
        text = target.read_text(encoding="utf-8")
        assert text.startswith("Project Structure\n")
        assert "Project: v2\n" in text
        assert "├── a\n│   └── b.txt\n└── d.txt\n" in text

        renamed = runner.invoke(app, ["rename", oldest.id[:8], "--name", "baseline"])
        assert renamed.exit_code == 0
        assert [snapshot.name for snapshot in _snapshots(workspace)] == ["v2", "baseline"]

        deleted = runner.invoke(app, ["delete", oldest.id])
        assert deleted.exit_code == 0
        assert [snapshot.name for snapshot in _snapshots(workspace)] == ["v2"]

    def test_unknown_snapshot(self, workspace):
        result = runner.invoke(app, ["show", "deadbeef"])

        assert result.exit_code == 1
        assert "Snapshot not found" in result.output

    def test_empty_history(self, workspace):
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No snapshots yet" in result.output


class TestReport:
    """Tests for `zt report`"""

    def test_writes_structure_and_contents(self, zip_file, tmp_path):
        archive = zip_file({"src/": None, "src/main.py": "print('hi')\n", "logo.png": b"\x89PNG\x00"})
        target = tmp_path / "report.txt"

        result = runner.invoke(app, ["report", str(archive), "-o", str(target), "--name", "demo"])

        assert result.exit_code == 0
        text = target.read_text(encoding="utf-8")
        assert text.startswith("Project Structure & Contents\n")
        assert "Project: demo\n" in text
        assert "TREE STRUCTURE" in text
        assert "File: src/main.py" in text
        assert "print('hi')\n" in text
        assert "File: logo.png\n" in text
        assert "[content not available]" in text

    def test_reads_archive_once(self, zip_file, tmp_path, monkeypatch):
        archive = zip_file({"a.txt": "alpha", "b.txt": "beta"})
        reads = []

        def counting_read(path):
            reads.append(path)
            return read_archive_file(path)

        monkeypatch.setattr(cli, "read_archive_file", counting_read)

        result = runner.invoke(app, ["report", str(archive), "-o", str(tmp_path / "r.txt")])

        assert result.exit_code == 0
        assert reads == [archive]
        text = (tmp_path / "r.txt").read_text(encoding="utf-8")
        assert "alpha" in text
        assert "beta" in text

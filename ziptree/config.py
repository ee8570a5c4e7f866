from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path


CONFIG_FILENAME = ".ziptree.json"
SNAPSHOT_DB_FILENAME = ".zt_snapshots.db"


@dataclass(slots=True)
class ZipTreeConfig:
    workspace_root: str
    owner: str = ""
    db_path: str = SNAPSHOT_DB_FILENAME

    @property
    def workspace_root_path(self) -> Path:
        return Path(self.workspace_root).resolve()

    @property
    def snapshot_db_path(self) -> Path:
        path = Path(self.db_path).expanduser()
        if not path.is_absolute():
            path = self.workspace_root_path / path
        return path


def config_path(base_dir: Path | None = None) -> Path:
    return (base_dir or Path.cwd()).resolve() / CONFIG_FILENAME


def load_config(base_dir: Path | None = None) -> ZipTreeConfig:
    path = config_path(base_dir)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}. Run `zt init` first.")

    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    return ZipTreeConfig(
        workspace_root=data.get("workspace_root") or str(path.parent),
        owner=data.get("owner", ""),
        db_path=data.get("db_path") or SNAPSHOT_DB_FILENAME,
    )


def save_config(config: ZipTreeConfig, base_dir: Path | None = None) -> Path:
    path = config_path(base_dir)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(asdict(config), fh, indent=2)
        fh.write("\n")
    return path

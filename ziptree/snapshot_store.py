from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ziptree.models import FileNode, Snapshot, forest_from_json, forest_to_json


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS project_snapshots (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    structure TEXT NOT NULL,
    owner TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_project_snapshots_owner_created
ON project_snapshots (owner, created_at);
"""

SNAPSHOT_COLUMNS = "id, name, description, structure, owner, created_at, updated_at"


class SnapshotNotFoundError(LookupError):
    def __init__(self, snapshot_id: str) -> None:
        super().__init__(f"Snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _row_to_snapshot(row: aiosqlite.Row) -> Snapshot:
    return Snapshot(
        id=str(row["id"]),
        name=str(row["name"]),
        description=None if row["description"] is None else str(row["description"]),
        structure=forest_from_json(str(row["structure"])),
        owner=str(row["owner"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


async def ensure_db(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.execute(SCHEMA_SQL)
        await db.execute(INDEX_SQL)
        await db.commit()


async def create_snapshot(
    db_path: Path,
    *,
    name: str,
    structure: list[FileNode],
    owner: str,
    description: str | None = None,
    created_at: str | None = None,
) -> Snapshot:
    name = name.strip()
    if not name:
        raise ValueError("Snapshot name must not be empty.")

    timestamp = created_at or _utc_now()
    snapshot = Snapshot(
        id=uuid.uuid4().hex,
        name=name,
        description=(description or "").strip() or None,
        structure=structure,
        owner=owner,
        created_at=timestamp,
        updated_at=timestamp,
    )

    await ensure_db(db_path)
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            f"""
            INSERT INTO project_snapshots ({SNAPSHOT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                snapshot.id,
                snapshot.name,
                snapshot.description,
                forest_to_json(structure),
                snapshot.owner,
                snapshot.created_at,
                snapshot.updated_at,
            ),
        )
        await db.commit()
    return snapshot


async def get_snapshot(db_path: Path, snapshot_id: str) -> Snapshot:
    await ensure_db(db_path)
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            f"SELECT {SNAPSHOT_COLUMNS} FROM project_snapshots WHERE id = ?",
            (snapshot_id,),
        )
        row = await cursor.fetchone()
        await cursor.close()

    if row is None:
        raise SnapshotNotFoundError(snapshot_id)
    return _row_to_snapshot(row)


async def list_snapshots(db_path: Path, *, owner: str | None = None) -> list[Snapshot]:
    await ensure_db(db_path)
    query = f"SELECT {SNAPSHOT_COLUMNS} FROM project_snapshots"
    params: tuple[str, ...] = ()
    if owner is not None:
        query += " WHERE owner = ?"
        params = (owner,)
    query += " ORDER BY created_at DESC, id DESC"

    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(query, params)
        rows = await cursor.fetchall()
        await cursor.close()

    return [_row_to_snapshot(row) for row in rows]


async def find_previous_snapshot(db_path: Path, snapshot: Snapshot) -> Snapshot | None:
    await ensure_db(db_path)
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            f"""
            SELECT {SNAPSHOT_COLUMNS} FROM project_snapshots
            WHERE owner = ? AND created_at < ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (snapshot.owner, snapshot.created_at),
        )
        row = await cursor.fetchone()
        await cursor.close()

    if row is None:
        return None
    return _row_to_snapshot(row)


async def update_snapshot(
    db_path: Path,
    snapshot_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
) -> Snapshot:
    current = await get_snapshot(db_path, snapshot_id)
    new_name = current.name if name is None else name.strip()
    if not new_name:
        raise ValueError("Snapshot name must not be empty.")
    new_description = current.description if description is None else (description.strip() or None)

    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            UPDATE project_snapshots
            SET name = ?, description = ?, updated_at = ?
            WHERE id = ?
            """,
            (new_name, new_description, _utc_now(), snapshot_id),
        )
        await db.commit()
    return await get_snapshot(db_path, snapshot_id)


async def delete_snapshot(db_path: Path, snapshot_id: str) -> bool:
    await ensure_db(db_path)
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            "DELETE FROM project_snapshots WHERE id = ?",
            (snapshot_id,),
        )
        deleted = cursor.rowcount > 0
        await cursor.close()
        await db.commit()
    return deleted


async def resolve_snapshot_id(db_path: Path, id_prefix: str) -> str:
    """Expand a unique id prefix (as shown by `zt history`) to a full id."""
    prefix = id_prefix.strip()
    if not prefix:
        raise SnapshotNotFoundError(id_prefix)

    await ensure_db(db_path)
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            "SELECT id FROM project_snapshots WHERE substr(id, 1, ?) = ? ORDER BY id LIMIT 2",
            (len(prefix), prefix),
        )
        rows = await cursor.fetchall()
        await cursor.close()

    if not rows:
        raise SnapshotNotFoundError(id_prefix)
    if len(rows) > 1:
        raise ValueError(f"Snapshot id prefix is ambiguous: {id_prefix}")
    return str(rows[0][0])

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ziptree.annotate import annotate_forest
from ziptree.models import ComparisonResult, FileNode, Snapshot
from ziptree.snapshot_store import find_previous_snapshot, get_snapshot
from ziptree.tree_diff import diff_forests


@dataclass(slots=True)
class SnapshotComparison:
    old_snapshot: Snapshot
    new_snapshot: Snapshot
    result: ComparisonResult
    annotated_structure: list[FileNode]

    @property
    def has_changes(self) -> bool:
        return self.result.has_changes


def compare_structures(
    old_snapshot: Snapshot, new_snapshot: Snapshot
) -> SnapshotComparison:
    result = diff_forests(old_snapshot.structure, new_snapshot.structure)
    return SnapshotComparison(
        old_snapshot=old_snapshot,
        new_snapshot=new_snapshot,
        result=result,
        annotated_structure=annotate_forest(new_snapshot.structure, result),
    )


async def compare_snapshots(db_path: Path, old_id: str, new_id: str) -> SnapshotComparison:
    old_snapshot = await get_snapshot(db_path, old_id)
    new_snapshot = await get_snapshot(db_path, new_id)
    return compare_structures(old_snapshot, new_snapshot)


async def compare_with_previous(db_path: Path, snapshot_id: str) -> SnapshotComparison | None:
    snapshot = await get_snapshot(db_path, snapshot_id)
    previous = await find_previous_snapshot(db_path, snapshot)
    if previous is None:
        return None
    return compare_structures(previous, snapshot)

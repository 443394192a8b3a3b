"""Depth-keyed checkpoints of the undo and redo stacks."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from history_engine.commands import Command, to_payload
from history_engine.models import Snapshot


class SnapshotStore:
    """Holds at most one snapshot per undo depth.

    A later snapshot at an already used depth replaces the earlier one.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[int, Snapshot] = {}

    def capture(self, undo_stack: Iterable[Command], redo_stack: Iterable[Command]) -> Snapshot:
        undo_payloads = [to_payload(cmd) for cmd in undo_stack]
        snapshot = Snapshot(
            depth=len(undo_payloads),
            undo_stack=undo_payloads,
            redo_stack=[to_payload(cmd) for cmd in redo_stack],
        )
        self._snapshots[snapshot.depth] = snapshot
        return snapshot

    def latest_at_or_below(self, depth: int) -> Optional[Snapshot]:
        for key in sorted(self._snapshots, reverse=True):
            if key <= depth:
                return self._snapshots[key]
        return None

    def get(self, depth: int) -> Optional[Snapshot]:
        return self._snapshots.get(depth)

    def depths(self) -> List[int]:
        return sorted(self._snapshots)

    def clear(self) -> None:
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)

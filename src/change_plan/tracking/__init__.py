"""Snapshot, diff, and ledger state for symbol change tracking."""

from .diff import (
    ADDED,
    MODIFIED,
    REMOVED,
    ChangeKind,
    PatchRenderer,
    SymbolChange,
    diff_snapshots,
    unified_diff,
)
from .ledger import ChangeLedger, FileChanges
from .snapshots import STALENESS_WINDOW_MS, SnapshotStore, SymbolSnapshot

__all__ = [
    "ADDED",
    "ChangeKind",
    "ChangeLedger",
    "FileChanges",
    "MODIFIED",
    "PatchRenderer",
    "REMOVED",
    "STALENESS_WINDOW_MS",
    "SnapshotStore",
    "SymbolChange",
    "SymbolSnapshot",
    "diff_snapshots",
    "unified_diff",
]

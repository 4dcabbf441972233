"""Mutable file -> symbol changes map shared by saves and grouping passes."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass

from change_plan.tracking.diff import SymbolChange


@dataclass(slots=True, frozen=True)
class FileChanges:
    """Changes most recently computed for one file."""

    path: str
    changes: tuple[SymbolChange, ...]


class ChangeLedger:
    """Single-writer ledger; each per-file read or write is atomic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[SymbolChange, ...]] = {}

    def put(self, path: str, changes: Iterable[SymbolChange]) -> None:
        """Replace the change list for a file, keeping its ledger position."""
        frozen = tuple(changes)
        with self._lock:
            self._entries[path] = frozen

    def put_if_unchanged(
        self,
        path: str,
        expected: tuple[SymbolChange, ...],
        changes: Iterable[SymbolChange],
    ) -> bool:
        """Replace a file's changes only if nobody wrote it since ``expected`` was read."""
        frozen = tuple(changes)
        with self._lock:
            if self._entries.get(path) is not expected:
                return False
            self._entries[path] = frozen
            return True

    def get(self, path: str) -> tuple[SymbolChange, ...]:
        with self._lock:
            return self._entries.get(path, ())

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def paths(self) -> tuple[str, ...]:
        """Return ledger file paths in first-write order."""
        with self._lock:
            return tuple(self._entries)

    def snapshot(self) -> list[FileChanges]:
        """Return a consistent copy of every entry in first-write order."""
        with self._lock:
            return [FileChanges(path=path, changes=changes) for path, changes in self._entries.items()]

    def all_changes(self) -> list[SymbolChange]:
        """Return every change flattened in ledger order."""
        return [change for entry in self.snapshot() for change in entry.changes]

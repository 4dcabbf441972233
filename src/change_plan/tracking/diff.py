"""Symbol-level diffing between two snapshots of the same file."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Final, Literal, Protocol

from change_plan.indexers.base import Symbol
from change_plan.tracking.snapshots import SymbolSnapshot

ChangeKind = Literal["added", "modified", "removed"]

ADDED: Final = "added"
MODIFIED: Final = "modified"
REMOVED: Final = "removed"


class PatchRenderer(Protocol):
    """Renders a human-readable patch for one modified symbol."""

    def __call__(self, symbol_name: str, old_code: str, new_code: str) -> str: ...


def unified_diff(symbol_name: str, old_code: str, new_code: str) -> str:
    """Render a unified diff labelled with the symbol name."""
    return "\n".join(
        difflib.unified_diff(
            old_code.splitlines(),
            new_code.splitlines(),
            fromfile=symbol_name,
            tofile=symbol_name,
            lineterm="",
        )
    )


@dataclass(slots=True, frozen=True)
class SymbolChange:
    """One added, modified, or removed symbol.

    ``component_id`` and ``commit_id`` stay ``None`` until a grouping pass
    labels the change.
    """

    name: str
    symbol: Symbol
    kind: ChangeKind
    changed_at: str
    patch: str
    path: str
    component_id: str | None = None
    commit_id: str | None = None


def diff_snapshots(
    path: str,
    previous: SymbolSnapshot,
    current: SymbolSnapshot,
    *,
    changed_at: str,
    render_patch: PatchRenderer = unified_diff,
) -> list[SymbolChange]:
    """Compare two snapshots and emit added, modified, then removed changes."""
    changes: list[SymbolChange] = []
    for name in current:
        symbol = current[name]
        before = previous.get(name)
        if before is None:
            changes.append(
                SymbolChange(
                    name=name,
                    symbol=symbol,
                    kind=ADDED,
                    changed_at=changed_at,
                    patch=symbol.code,
                    path=path,
                )
            )
            continue
        if before.code != symbol.code:
            changes.append(
                SymbolChange(
                    name=name,
                    symbol=symbol,
                    kind=MODIFIED,
                    changed_at=changed_at,
                    patch=render_patch(name, before.code, symbol.code),
                    path=path,
                )
            )
    for name in previous:
        if name in current:
            continue
        changes.append(
            SymbolChange(
                name=name,
                symbol=previous[name],
                kind=REMOVED,
                changed_at=changed_at,
                patch="",
                path=path,
            )
        )
    return changes

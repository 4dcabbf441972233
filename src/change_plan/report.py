"""Serializable changelog and component description payloads."""

from __future__ import annotations

from collections.abc import Iterable

from change_plan.indexers import file_extension
from change_plan.paths import relative_to_root
from change_plan.tracking import SymbolChange

UNTRACKED = "not_tracked"

_LANGUAGE_BY_EXTENSION = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "typescript",
    "jsx": "typescript",
    "py": "python",
    "go": "go",
}


def language_id_for_path(path: str) -> str | None:
    """Return the language id used in description payloads, if known."""
    extension = file_extension(path)
    if extension is None:
        return None
    return _LANGUAGE_BY_EXTENSION.get(extension)


def changelog_entry(change: SymbolChange) -> dict[str, object]:
    """Return one changelog record for a UI layer."""
    symbol = change.symbol
    return {
        "name": change.name,
        "display_name": symbol.display_name or change.name,
        "change_type": change.kind,
        "start_line": symbol.start_line,
        "end_line": symbol.end_line,
        "file_path": change.path,
        "working_directory": symbol.working_directory,
        "relative_path": relative_to_root(change.path, symbol.working_directory),
        "changed_at": change.changed_at,
        "component_identifier": change.component_id or UNTRACKED,
        "commit_identifier": change.commit_id or UNTRACKED,
        "diff_patch": change.patch,
    }


def changelog_entries(changes: Iterable[SymbolChange]) -> list[dict[str, object]]:
    """Return changelog records in the given (plan) order."""
    return [changelog_entry(change) for change in changes]


def group_by_component(changes: Iterable[SymbolChange]) -> dict[str, list[SymbolChange]]:
    """Group changes by component id, keeping first-seen component order."""
    grouped: dict[str, list[SymbolChange]] = {}
    for change in changes:
        grouped.setdefault(change.component_id or UNTRACKED, []).append(change)
    return grouped


def component_description_inputs(
    changes: Iterable[SymbolChange],
) -> list[dict[str, object]]:
    """Return, per component, what a description generator needs to see.

    The indexer-supplied language id wins over the file extension.
    """
    payload: list[dict[str, object]] = []
    for component_id, members in group_by_component(changes).items():
        payload.append(
            {
                "component_identifier": component_id,
                "changes": [
                    {
                        "name": change.symbol.display_name or change.name,
                        "language_id": change.symbol.language_id
                        or language_id_for_path(change.path)
                        or "not_known",
                        "diff_patch": change.patch,
                        "last_edit_time": change.changed_at,
                    }
                    for change in members
                ],
            }
        )
    return payload

"""Change tracking orchestration: open/save handlers and commit planning."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from change_plan.config import TrackerConfig, TrackerOverrides, load_effective_config
from change_plan.graph import (
    build_symbol_graph,
    cluster_subgraphs,
    cluster_symbols,
    plan_file_groups,
    sequence_cluster,
)
from change_plan.indexers import IndexerRegistry, Symbol, normalize_symbols, strip_scm_suffix
from change_plan.logging import JsonlEventLogger, TrackingEvent, sanitize_metadata, utc_timestamp
from change_plan.paths import canonical_path
from change_plan.tracking import (
    ChangeLedger,
    FileChanges,
    PatchRenderer,
    SnapshotStore,
    SymbolChange,
    SymbolSnapshot,
    diff_snapshots,
    unified_diff,
)


class TrackerState(Enum):
    """Readiness of a tracker; handlers are inert until READY."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(slots=True)
class TrackerContext:
    """Effective config plus readiness state shared by tracker handlers."""

    config: TrackerConfig
    state: TrackerState = TrackerState.UNINITIALIZED

    @property
    def is_ready(self) -> bool:
        return self.state is TrackerState.READY

    def mark_ready(self) -> None:
        self.state = TrackerState.READY


def _wall_clock_ms() -> float:
    return time.time() * 1000


class ChangeTracker:
    """Tracks symbol changes per file and plans components and commits."""

    def __init__(
        self,
        context: TrackerContext,
        indexers: IndexerRegistry,
        *,
        event_logger: JsonlEventLogger | None = None,
        render_patch: PatchRenderer = unified_diff,
        clock: Callable[[], float] = _wall_clock_ms,
    ) -> None:
        self._context = context
        self._indexers = indexers
        self._event_logger = event_logger
        self._render_patch = render_patch
        self._clock = clock
        tracking = context.config.tracking
        self._working_directory = str(context.config.working_directory)
        self._snapshots = SnapshotStore(
            staleness_window_ms=tracking.staleness_window_ms,
            max_tracked_files=tracking.max_tracked_files,
        )
        self._ledger = ChangeLedger()

    @property
    def context(self) -> TrackerContext:
        return self._context

    @property
    def snapshots(self) -> SnapshotStore:
        return self._snapshots

    @property
    def ledger(self) -> ChangeLedger:
        return self._ledger

    def canonical(self, path: str) -> str:
        """Return the ledger key used for a path."""
        return canonical_path(strip_scm_suffix(path), self._working_directory)

    def on_file_opened(self, path: str, symbols: Iterable[Symbol] | None = None) -> bool:
        """Record the open-time baseline once per file.

        When ``symbols`` is omitted the file is parsed with a forced refresh.
        Returns True when a new baseline was stored.
        """
        if not self._require_ready("file_opened", path):
            return False
        key = self.canonical(path)
        if self._snapshots.open_baseline(key) is not None:
            return False
        now = self._clock()
        if symbols is None:
            parsed = self._parse(key, force_refresh=True)
        else:
            parsed = self._normalize(key, list(symbols))
        if parsed is None:
            return False
        self._snapshots.record_open(key, parsed, now)
        self._record("file_opened", key, metadata={"symbol_count": len(parsed)})
        return True

    def on_file_saved(self, path: str) -> None:
        """Re-parse a saved file, diff it against its baseline, update the ledger.

        Saves within the staleness window of the last successful parse are
        ignored.
        """
        if not self._require_ready("file_saved", path):
            return
        key = self.canonical(path)
        now = self._clock()
        if not self._snapshots.is_stale(key, now):
            self._record("save_debounced", key)
            return
        current = self._current_snapshot(key, now, use_cache=False)
        if current is None:
            return
        baseline = self._snapshots.open_baseline(key)
        if baseline is None:
            self._record(
                "missing_baseline",
                key,
                ok=False,
                error_code="missing_baseline",
                metadata={"stage": "save"},
            )
            baseline = SymbolSnapshot.empty(key)
        previous = self._ledger.get(key)
        changes = _carry_change_times(
            previous,
            diff_snapshots(
                key,
                baseline,
                current,
                changed_at=utc_timestamp(now),
                render_patch=self._render_patch,
            ),
        )
        self._ledger.put(key, changes)
        self._record("file_saved", key, metadata={"change_count": len(changes)})

    def changed_symbols(self) -> list[FileChanges]:
        """Return the raw ledger view in ledger order."""
        return self._ledger.snapshot()

    def plan_file_groups(self, changes: Iterable[SymbolChange] | None = None) -> list[list[str]]:
        """Group files that must be committed together."""
        if changes is None:
            changes = self._ledger.all_changes()
        return plan_file_groups(changes)

    def build_change_plan(self) -> list[SymbolChange]:
        """Re-diff every touched file and label components and commits.

        Returns changes in cluster-major, dependency-first order. Files that
        cannot be parsed or have no baseline are skipped and logged.
        """
        if not self._require_ready("change_plan", None):
            return []
        now = self._clock()
        entries = self._ledger.snapshot()
        refreshed: list[tuple[FileChanges, list[SymbolChange]]] = []
        for entry in entries:
            fresh = self._refresh_entry(entry, now)
            if fresh is not None:
                refreshed.append((entry, fresh))

        all_changes = [change for _, fresh in refreshed for change in fresh]
        by_name: dict[str, list[SymbolChange]] = {}
        for change in all_changes:
            by_name.setdefault(change.name, []).append(change)

        graph = build_symbol_graph(all_changes)
        ordered: list[SymbolChange] = []
        subgraphs = cluster_subgraphs(graph, cluster_symbols(graph))
        for index, subgraph in enumerate(subgraphs, start=1):
            component_id = f"component_{index}"
            result = sequence_cluster(subgraph)
            if result.cyclic:
                self._record(
                    "dependency_cycle",
                    None,
                    ok=False,
                    error_code="dependency_cycle",
                    metadata={"component": component_id, "symbols": list(result.order)},
                )
            for name in result.order:
                for change in by_name.get(name, ()):
                    ordered.append(replace(change, component_id=component_id))

        commit_by_path: dict[str, str] = {}
        file_groups = plan_file_groups(all_changes)
        for index, group in enumerate(file_groups, start=1):
            for path in group:
                commit_by_path[path] = f"commit_{index}"
        labelled = [replace(change, commit_id=commit_by_path.get(change.path)) for change in ordered]

        by_path: dict[str, list[SymbolChange]] = {entry.path: [] for entry, _ in refreshed}
        for change in labelled:
            by_path[change.path].append(change)
        for entry, _ in refreshed:
            if not self._ledger.put_if_unchanged(entry.path, entry.changes, by_path[entry.path]):
                self._record("ledger_write_skipped", entry.path, metadata={"reason": "concurrent_save"})

        self._record(
            "change_plan_built",
            None,
            metadata={
                "file_count": len(refreshed),
                "change_count": len(labelled),
                "component_count": len({change.component_id for change in labelled}),
                "commit_count": len(file_groups),
            },
        )
        return labelled

    def _refresh_entry(self, entry: FileChanges, now: float) -> list[SymbolChange] | None:
        baseline = self._snapshots.open_baseline(entry.path)
        if baseline is None:
            self._record(
                "missing_baseline",
                entry.path,
                ok=False,
                error_code="missing_baseline",
                metadata={"stage": "change_plan", "change_count": len(entry.changes)},
            )
            return None
        current = self._current_snapshot(entry.path, now, use_cache=True)
        if current is None:
            return None
        fresh = diff_snapshots(
            entry.path,
            baseline,
            current,
            changed_at=utc_timestamp(now),
            render_patch=self._render_patch,
        )
        return _carry_change_times(entry.changes, fresh)

    def _current_snapshot(self, key: str, now: float, *, use_cache: bool) -> SymbolSnapshot | None:
        if use_cache and not self._snapshots.is_stale(key, now):
            return self._snapshots.last_saved(key)
        parsed = self._parse(key, force_refresh=False)
        if parsed is None:
            return None
        return self._snapshots.put_last_saved(key, parsed, now)

    def _parse(self, key: str, *, force_refresh: bool) -> list[Symbol] | None:
        indexer = self._indexers.select(key)
        if indexer is None:
            self._record("unsupported_file", key)
            return None
        try:
            raw = indexer.parse_file(key, self._working_directory, force_refresh)
            return normalize_symbols(raw)
        except Exception as error:
            self._record(
                "parse_failed",
                key,
                ok=False,
                error_code=type(error).__name__,
                metadata={"indexer": indexer.name, "message": str(error)},
            )
            return None

    def _normalize(self, key: str, symbols: list[Symbol]) -> list[Symbol] | None:
        try:
            return normalize_symbols(symbols)
        except ValueError as error:
            self._record(
                "parse_failed",
                key,
                ok=False,
                error_code=type(error).__name__,
                metadata={"indexer": None, "message": str(error)},
            )
            return None

    def _require_ready(self, operation: str, path: str | None) -> bool:
        if self._context.is_ready:
            return True
        self._record(
            "tracker_not_ready",
            path,
            ok=False,
            error_code="not_ready",
            metadata={"operation": operation},
        )
        return False

    def _record(
        self,
        event: str,
        path: str | None,
        *,
        ok: bool = True,
        error_code: str | None = None,
        metadata: dict[str, object] | None = None,
    ) -> None:
        if self._event_logger is None:
            return
        self._event_logger.append(
            TrackingEvent(
                timestamp=utc_timestamp(self._clock()),
                event=event,
                path=path,
                ok=ok,
                error_code=error_code,
                metadata=sanitize_metadata(metadata or {}),
            )
        )


def _carry_change_times(
    previous: Iterable[SymbolChange], fresh: list[SymbolChange]
) -> list[SymbolChange]:
    """Keep the first-seen timestamp of changes that are still the same kind."""
    first_seen = {(change.name, change.kind): change.changed_at for change in previous}
    return [
        replace(change, changed_at=first_seen.get((change.name, change.kind), change.changed_at))
        for change in fresh
    ]


def create_tracker(
    working_directory: str,
    indexers: IndexerRegistry,
    *,
    overrides: TrackerOverrides | None = None,
    render_patch: PatchRenderer = unified_diff,
    clock: Callable[[], float] = _wall_clock_ms,
    ready: bool = True,
) -> ChangeTracker:
    """Create a configured tracker for a working directory."""
    config = load_effective_config(Path(working_directory).resolve(), overrides=overrides)
    context = TrackerContext(config=config)
    if ready:
        context.mark_ready()
    event_logger = JsonlEventLogger(config.events_path) if config.events.enabled else None
    return ChangeTracker(
        context,
        indexers,
        event_logger=event_logger,
        render_patch=render_patch,
        clock=clock,
    )

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from change_plan import ChangeTracker, create_tracker
from change_plan.indexers import Dependency, DependencyEdge, IndexerRegistry, Symbol
from change_plan.logging import JsonlEventLogger


@dataclass(slots=True)
class ManualClock:
    now: float = 0.0

    def __call__(self) -> float:
        return self.now


@dataclass(slots=True)
class FlakyIndexer:
    """Returns scripted symbols; ``failing`` paths raise, ``empty_handed`` paths return None."""

    name: str = "flaky"
    files: dict[str, list[Symbol]] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    empty_handed: set[str] = field(default_factory=set)

    def supports_path(self, path: str) -> bool:
        return path.endswith(".go")

    def parse_file(
        self, path: str, working_directory: str, force_refresh: bool
    ) -> list[Symbol] | None:
        _ = working_directory
        _ = force_refresh
        if path in self.failing:
            raise RuntimeError("unexpected token near 'func'")
        if path in self.empty_handed:
            return None
        return list(self.files.get(path, []))


def _symbol(name: str, path: str, code: str, deps: tuple[str, ...] = ()) -> Symbol:
    dependencies: tuple[Dependency, ...] = ()
    if deps:
        dependencies = (
            Dependency(name="calls", edges=tuple(DependencyEdge(symbol_name=dep) for dep in deps)),
        )
    return Symbol(
        name=name,
        file_path=path,
        working_directory="/work",
        code=code,
        start_line=1,
        end_line=1,
        dependencies=dependencies,
    )


def _events(tracker: ChangeTracker) -> list[dict[str, object]]:
    return JsonlEventLogger(tracker.context.config.events_path).read(limit=100)


def _setup(tmp_path: Path, *, ready: bool = True) -> tuple[ChangeTracker, FlakyIndexer, ManualClock]:
    indexer = FlakyIndexer()
    registry = IndexerRegistry()
    registry.register(indexer)
    clock = ManualClock(now=0.0)
    tracker = create_tracker(str(tmp_path), registry, clock=clock, ready=ready)
    return tracker, indexer, clock


def test_unsupported_file_is_ignored(tmp_path: Path) -> None:
    tracker, _, _ = _setup(tmp_path)
    path = str(tmp_path / "notes.txt")

    assert tracker.on_file_opened(path) is False
    tracker.on_file_saved(path)

    assert tracker.canonical(path) not in tracker.ledger
    assert tracker.build_change_plan() == []
    assert [event["event"] for event in _events(tracker)][:2] == ["unsupported_file", "unsupported_file"]


def test_file_without_extension_is_unsupported(tmp_path: Path) -> None:
    tracker, _, _ = _setup(tmp_path)
    path = str(tmp_path / "Makefile")

    tracker.on_file_saved(path)

    assert tracker.ledger.paths() == ()
    assert _events(tracker)[0]["event"] == "unsupported_file"


def test_scm_shadow_path_maps_to_real_file(tmp_path: Path) -> None:
    tracker, indexer, _ = _setup(tmp_path)
    real = tracker.canonical(str(tmp_path / "main.go"))
    indexer.files[real] = [_symbol("main", real, "v1")]

    assert tracker.on_file_opened(real + ".git") is True
    assert tracker.snapshots.open_baseline(real) is not None


def test_parse_failure_excludes_only_that_file(tmp_path: Path) -> None:
    tracker, indexer, clock = _setup(tmp_path)
    good = tracker.canonical(str(tmp_path / "good.go"))
    bad = tracker.canonical(str(tmp_path / "bad.go"))
    tracker.on_file_opened(good, symbols=[])
    tracker.on_file_opened(bad, symbols=[])
    indexer.files[good] = [_symbol("Serve", good, "func Serve()")]
    indexer.files[bad] = [_symbol("Broken", bad, "func Broken()")]
    tracker.on_file_saved(good)
    tracker.on_file_saved(bad)

    indexer.failing.add(bad)
    clock.now = 5_000.0
    plan = tracker.build_change_plan()

    assert [change.name for change in plan] == ["Serve"]
    failures = [event for event in _events(tracker) if event["event"] == "parse_failed"]
    assert len(failures) == 1
    assert failures[0]["path"] == bad
    assert failures[0]["ok"] is False
    assert failures[0]["error_code"] == "RuntimeError"
    assert failures[0]["metadata"] == {
        "indexer": "flaky",
        "message_length": len("unexpected token near 'func'"),
        "message_present": True,
    }


def test_parse_failure_on_save_keeps_previous_ledger_entry(tmp_path: Path) -> None:
    tracker, indexer, clock = _setup(tmp_path)
    path = tracker.canonical(str(tmp_path / "svc.go"))
    tracker.on_file_opened(path, symbols=[])
    indexer.files[path] = [_symbol("Run", path, "func Run()")]
    tracker.on_file_saved(path)
    before = tracker.ledger.get(path)

    indexer.failing.add(path)
    clock.now = 3_000.0
    tracker.on_file_saved(path)

    assert tracker.ledger.get(path) is before


def test_indexer_returning_none_excludes_only_that_file(tmp_path: Path) -> None:
    tracker, indexer, clock = _setup(tmp_path)
    good = tracker.canonical(str(tmp_path / "good.go"))
    bad = tracker.canonical(str(tmp_path / "bad.go"))
    tracker.on_file_opened(good, symbols=[])
    tracker.on_file_opened(bad, symbols=[])
    indexer.files[good] = [_symbol("A", good, "func A()")]
    indexer.files[bad] = [_symbol("B", bad, "func B()")]
    tracker.on_file_saved(good)
    tracker.on_file_saved(bad)

    indexer.empty_handed.add(bad)
    indexer.files[good] = [_symbol("A", good, "func A() {}")]
    clock.now = 5_000.0
    plan = tracker.build_change_plan()

    assert [change.name for change in plan] == ["A"]
    failures = [event for event in _events(tracker) if event["event"] == "parse_failed"]
    assert [(event["path"], event["error_code"]) for event in failures] == [
        (bad, "IndexerContractError")
    ]


def test_contract_violation_counts_as_parse_failure(tmp_path: Path) -> None:
    tracker, indexer, _ = _setup(tmp_path)
    path = tracker.canonical(str(tmp_path / "dup.go"))
    indexer.files[path] = [_symbol("Twice", path, "a"), _symbol("Twice", path, "b")]

    assert tracker.on_file_opened(path) is False

    event = _events(tracker)[-1]
    assert event["event"] == "parse_failed"
    assert event["error_code"] == "IndexerContractError"


def test_missing_baseline_is_skipped_with_warning(tmp_path: Path) -> None:
    tracker, indexer, _ = _setup(tmp_path)
    opened = tracker.canonical(str(tmp_path / "opened.go"))
    unopened = tracker.canonical(str(tmp_path / "unopened.go"))
    tracker.on_file_opened(opened, symbols=[])
    indexer.files[opened] = [_symbol("Kept", opened, "kept")]
    indexer.files[unopened] = [_symbol("Orphan", unopened, "orphan")]
    tracker.on_file_saved(opened)
    tracker.on_file_saved(unopened)

    assert [change.kind for change in tracker.ledger.get(unopened)] == ["added"]

    plan = tracker.build_change_plan()

    assert [change.name for change in plan] == ["Kept"]
    warnings = [event for event in _events(tracker) if event["event"] == "missing_baseline"]
    assert [event["metadata"]["stage"] for event in warnings] == ["save", "change_plan"]
    assert all(event["path"] == unopened for event in warnings)


def test_tracker_is_inert_until_ready(tmp_path: Path) -> None:
    tracker, indexer, _ = _setup(tmp_path, ready=False)
    path = tracker.canonical(str(tmp_path / "main.go"))
    indexer.files[path] = [_symbol("main", path, "v1")]

    assert tracker.on_file_opened(path) is False
    tracker.on_file_saved(path)
    assert tracker.build_change_plan() == []
    assert tracker.snapshots.tracked_paths() == ()
    assert tracker.ledger.paths() == ()
    not_ready = [event for event in _events(tracker) if event["event"] == "tracker_not_ready"]
    assert [event["metadata"]["operation"] for event in not_ready] == [
        "file_opened",
        "file_saved",
        "change_plan",
    ]
    assert {event["error_code"] for event in not_ready} == {"not_ready"}

    tracker.context.mark_ready()

    assert tracker.on_file_opened(path) is True


def test_dependency_cycle_still_produces_one_component(tmp_path: Path) -> None:
    tracker, indexer, _ = _setup(tmp_path)
    path = tracker.canonical(str(tmp_path / "loop.go"))
    tracker.on_file_opened(path, symbols=[])
    indexer.files[path] = [
        Symbol(
            name="Ping",
            file_path=path,
            working_directory="/work",
            code="ping",
            start_line=1,
            end_line=3,
            dependencies=(Dependency(name="calls", edges=(DependencyEdge("Pong"),)),),
        ),
        Symbol(
            name="Pong",
            file_path=path,
            working_directory="/work",
            code="pong",
            start_line=5,
            end_line=7,
            dependencies=(Dependency(name="calls", edges=(DependencyEdge("Ping"),)),),
        ),
    ]
    tracker.on_file_saved(path)

    plan = tracker.build_change_plan()

    assert [change.name for change in plan] == ["Ping", "Pong"]
    assert {change.component_id for change in plan} == {"component_1"}
    cycles = [event for event in _events(tracker) if event["event"] == "dependency_cycle"]
    assert len(cycles) == 1
    assert cycles[0]["ok"] is False
    assert cycles[0]["metadata"] == {"component": "component_1", "symbols": ["Ping", "Pong"]}

"""Open-time and last-saved symbol snapshots per file."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from change_plan.config import DEFAULT_STALENESS_WINDOW_MS
from change_plan.indexers.base import Symbol

STALENESS_WINDOW_MS = DEFAULT_STALENESS_WINDOW_MS


@dataclass(slots=True, frozen=True)
class SymbolSnapshot:
    """Immutable name -> Symbol mapping for one file at one instant."""

    path: str
    captured_at_ms: float
    _symbols: Mapping[str, Symbol] = field(repr=False)

    @classmethod
    def capture(cls, path: str, symbols: Iterable[Symbol], captured_at_ms: float) -> SymbolSnapshot:
        """Build a snapshot; a later symbol with a repeated name wins."""
        by_name: dict[str, Symbol] = {}
        for symbol in symbols:
            by_name[symbol.name] = symbol
        return cls(path=path, captured_at_ms=captured_at_ms, _symbols=MappingProxyType(by_name))

    @classmethod
    def empty(cls, path: str) -> SymbolSnapshot:
        return cls.capture(path, (), 0.0)

    def __getitem__(self, name: str) -> Symbol:
        return self._symbols[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, name: object) -> bool:
        return name in self._symbols

    def get(self, name: str) -> Symbol | None:
        return self._symbols.get(name)

    def symbols(self) -> tuple[Symbol, ...]:
        """Return symbols in capture order."""
        return tuple(self._symbols.values())


class SnapshotStore:
    """Holds per-file baselines and staleness-checked last-saved snapshots.

    Entries live for the tracking session. When ``max_tracked_files`` is set
    the least recently touched file loses both of its snapshots once the
    bound is exceeded, and last-saved entries of never-opened files are
    held to the same bound.
    """

    def __init__(
        self,
        staleness_window_ms: int = STALENESS_WINDOW_MS,
        max_tracked_files: int | None = None,
    ) -> None:
        self._staleness_window_ms = staleness_window_ms
        self._max_tracked_files = max_tracked_files
        self._opened: OrderedDict[str, SymbolSnapshot] = OrderedDict()
        self._saved: OrderedDict[str, SymbolSnapshot] = OrderedDict()

    @property
    def staleness_window_ms(self) -> int:
        return self._staleness_window_ms

    def record_open(self, path: str, symbols: Iterable[Symbol], now_ms: float) -> bool:
        """Store the open-time baseline once; return False if already tracked."""
        if path in self._opened:
            self._opened.move_to_end(path)
            return False
        self._opened[path] = SymbolSnapshot.capture(path, symbols, now_ms)
        self._evict()
        return True

    def open_baseline(self, path: str) -> SymbolSnapshot | None:
        return self._opened.get(path)

    def last_saved(self, path: str) -> SymbolSnapshot | None:
        return self._saved.get(path)

    def put_last_saved(self, path: str, symbols: Iterable[Symbol], now_ms: float) -> SymbolSnapshot:
        """Overwrite the last-saved entry and return it."""
        snapshot = SymbolSnapshot.capture(path, symbols, now_ms)
        self._saved[path] = snapshot
        self._saved.move_to_end(path)
        if path in self._opened:
            self._opened.move_to_end(path)
        self._evict()
        return snapshot

    def is_stale(self, path: str, now_ms: float) -> bool:
        """Return True if there is no last-saved entry or it is past the window."""
        snapshot = self._saved.get(path)
        if snapshot is None:
            return True
        return now_ms > snapshot.captured_at_ms + self._staleness_window_ms

    def tracked_paths(self) -> tuple[str, ...]:
        """Return paths with an open-time baseline, least recently touched first."""
        return tuple(self._opened)

    def _evict(self) -> None:
        if self._max_tracked_files is None:
            return
        while len(self._opened) > self._max_tracked_files:
            evicted, _ = self._opened.popitem(last=False)
            self._saved.pop(evicted, None)
        while len(self._saved) > self._max_tracked_files:
            self._saved.popitem(last=False)

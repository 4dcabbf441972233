"""Core symbol indexer protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Protocol


@dataclass(slots=True, frozen=True)
class DependencyEdge:
    """Named reference from one symbol to another."""

    symbol_name: str
    file_path: str | None = None


@dataclass(slots=True, frozen=True)
class Dependency:
    """Group of dependency edges declared by one symbol."""

    name: str
    edges: tuple[DependencyEdge, ...] = ()


@dataclass(slots=True, frozen=True)
class Symbol:
    """Single named, located unit of source code produced by an indexer."""

    name: str
    file_path: str
    working_directory: str
    code: str
    start_line: int
    end_line: int
    display_name: str = ""
    dependencies: tuple[Dependency, ...] = field(default_factory=tuple)
    kind: str = "symbol"
    language_id: str | None = None

    def dependency_names(self) -> tuple[str, ...]:
        """Return edge targets in declaration order, without duplicates."""
        seen: dict[str, None] = {}
        for dependency in self.dependencies:
            for edge in dependency.edges:
                seen.setdefault(edge.symbol_name, None)
        return tuple(seen)


class IndexerContractError(ValueError):
    """Raised when indexer output violates the shared symbol contract."""


def symbol_sort_key(symbol: Symbol) -> tuple[int, int, str]:
    """Return deterministic sort key for symbols in one file."""
    return (symbol.start_line, symbol.end_line, symbol.name)


def validate_symbols(symbols: list[Symbol]) -> None:
    """Validate symbols against required invariant fields."""
    seen: set[str] = set()
    for symbol in symbols:
        if not symbol.name.strip():
            raise IndexerContractError("Symbol name must be non-empty.")
        if symbol.name in seen:
            raise IndexerContractError(f"Symbol name must be unique within a file: {symbol.name}")
        seen.add(symbol.name)
        if symbol.start_line < 1:
            raise IndexerContractError("Symbol start_line must be >= 1.")
        if symbol.end_line < symbol.start_line:
            raise IndexerContractError("Symbol end_line must be >= start_line.")


def normalize_symbols(symbols: list[Symbol]) -> list[Symbol]:
    """Fill display names, validate invariants, and sort deterministically."""
    if not isinstance(symbols, (list, tuple)):
        raise IndexerContractError(
            f"Indexer output must be a list of symbols, got {type(symbols).__name__}."
        )
    for symbol in symbols:
        if not isinstance(symbol, Symbol):
            raise IndexerContractError(f"Indexer output item is not a Symbol: {type(symbol).__name__}.")
    normalized = [
        symbol if symbol.display_name.strip() else replace(symbol, display_name=symbol.name)
        for symbol in symbols
    ]
    validate_symbols(normalized)
    return sorted(normalized, key=symbol_sort_key)


class SymbolIndexer(Protocol):
    """Protocol implemented by per-language symbol indexers."""

    name: str

    def supports_path(self, path: str) -> bool:
        """Return True when indexer can parse a file path."""

    def parse_file(self, path: str, working_directory: str, force_refresh: bool) -> list[Symbol]:
        """Return symbols with dependency edges; raise on parse failure."""

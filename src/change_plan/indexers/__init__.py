"""Symbol indexer interfaces."""

from .base import (
    Dependency,
    DependencyEdge,
    IndexerContractError,
    Symbol,
    SymbolIndexer,
    normalize_symbols,
    symbol_sort_key,
    validate_symbols,
)
from .registry import IndexerRegistry, file_extension, strip_scm_suffix

__all__ = [
    "Dependency",
    "DependencyEdge",
    "IndexerContractError",
    "IndexerRegistry",
    "Symbol",
    "SymbolIndexer",
    "file_extension",
    "normalize_symbols",
    "strip_scm_suffix",
    "symbol_sort_key",
    "validate_symbols",
]

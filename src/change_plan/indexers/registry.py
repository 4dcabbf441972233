"""Indexer registry with deterministic selection behavior."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

from change_plan.indexers.base import SymbolIndexer

SCM_SHADOW_SUFFIX = ".git"


def strip_scm_suffix(path: str) -> str:
    """Map an editor SCM shadow document path back to the real file."""
    if path.endswith(SCM_SHADOW_SUFFIX) and len(path) > len(SCM_SHADOW_SUFFIX):
        return path[: -len(SCM_SHADOW_SUFFIX)]
    return path


def file_extension(path: str) -> str | None:
    """Return the lower-cased extension without the dot, or None."""
    _, extension = posixpath.splitext(path.replace("\\", "/"))
    if not extension or extension == ".":
        return None
    return extension[1:].lower()


@dataclass(slots=True)
class IndexerRegistry:
    """Ordered indexer registry; paths nobody supports are unsupported."""

    _indexers: list[SymbolIndexer] = field(default_factory=list)

    def register(self, indexer: SymbolIndexer) -> None:
        """Register an indexer in deterministic insertion order."""
        self._indexers.append(indexer)

    def select(self, path: str) -> SymbolIndexer | None:
        """Select the first indexer that supports the path, else None."""
        real_path = strip_scm_suffix(path)
        if file_extension(real_path) is None:
            return None
        for indexer in self._indexers:
            if indexer.supports_path(real_path):
                return indexer
        return None

    def names(self) -> tuple[str, ...]:
        """Return registered indexer names in deterministic order."""
        return tuple(indexer.name for indexer in self._indexers)

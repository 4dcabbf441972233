"""Canonical path keys for snapshot, ledger, and graph lookups."""

from __future__ import annotations

import posixpath
import re
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:/")


def _normalize_separators(candidate: str) -> tuple[str, bool]:
    """Normalize path separators and detect absolute-style inputs."""
    normalized = candidate.strip().replace("\\", "/")
    if normalized.startswith("/"):
        return normalized, True
    if WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        return normalized[0].upper() + normalized[1:], True
    return normalized, False


def canonical_path(path: str, working_directory: str) -> str:
    """Return one stable string per file regardless of how the path is spelled."""
    normalized, is_absolute_style = _normalize_separators(path)
    if not normalized:
        raise ValueError("Path is empty.")
    if not is_absolute_style:
        root, _ = _normalize_separators(working_directory)
        normalized = f"{root.rstrip('/')}/{normalized}"
    drive = ""
    if WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        drive, normalized = normalized[:2], normalized[2:]
    return drive + posixpath.normpath(normalized).replace("//", "/")


def relative_to_root(path: str, working_directory: str) -> str:
    """Return a POSIX path relative to the working directory when possible."""
    canonical = canonical_path(path, working_directory)
    root = canonical_path(working_directory, working_directory)
    if canonical == root:
        return "."
    if canonical.startswith(f"{root.rstrip('/')}/"):
        return canonical[len(root.rstrip("/")) + 1 :]
    return canonical

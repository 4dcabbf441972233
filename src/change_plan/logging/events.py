"""Structured JSONL tracking event log utilities."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path


@dataclass(slots=True, frozen=True)
class TrackingEvent:
    """Sanitized representation of one tracking step or problem."""

    timestamp: str
    event: str
    path: str | None
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp(epoch_ms: float | None = None) -> str:
    """Return an ISO-8601 UTC timestamp, now or for a millisecond epoch."""
    if epoch_ms is None:
        moment = datetime.now(tz=UTC)
    else:
        moment = datetime.fromtimestamp(epoch_ms / 1000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_metadata(metadata: dict[str, object]) -> dict[str, object]:
    """Sanitize metadata so source text never reaches the log."""
    sanitized: dict[str, object] = {}
    for key in sorted(metadata.keys()):
        value = metadata[key]
        if key in {"code", "patch", "message"} and isinstance(value, str):
            sanitized[f"{key}_present"] = True
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, (int, float, bool, str)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, (list, tuple)):
            if all(isinstance(item, str) for item in value):
                sanitized[key] = list(value)
            else:
                sanitized[f"{key}_type"] = "list"
                sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_type"] = "dict"
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


class JsonlEventLogger:
    """Tracking event sink: one sorted-key JSON object per line."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: TrackingEvent) -> None:
        line = json.dumps(asdict(event), sort_keys=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(f"{line}\n")

    def read(
        self,
        since: str | None = None,
        limit: int = 50,
        *,
        event: str | None = None,
        path: str | None = None,
    ) -> list[dict[str, object]]:
        """Return the newest ``limit`` matching events, oldest first.

        ``since`` is an inclusive timestamp lower bound; ``event`` and ``path``
        match exactly. Lines that are not JSON objects are skipped.
        """
        if limit < 1 or not self._path.exists():
            return []
        matches: list[dict[str, object]] = []
        with self._path.open("r", encoding="utf-8") as handle:
            for record in _decode_lines(handle):
                if since is not None and not _at_or_after(record.get("timestamp"), since):
                    continue
                if event is not None and record.get("event") != event:
                    continue
                if path is not None and record.get("path") != path:
                    continue
                matches.append(record)
        return matches[-limit:]


def _decode_lines(lines: Iterable[str]) -> Iterator[dict[str, object]]:
    for line in lines:
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(record, dict):
            yield record


def _at_or_after(timestamp: object, since: str) -> bool:
    # Fixed-width ISO-8601 UTC strings order lexically
    return isinstance(timestamp, str) and timestamp >= since

"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "change_plan.toml"
DEFAULT_STALENESS_WINDOW_MS = 2000
STALENESS_WINDOW_MS_CAP = 60_000


@dataclass(slots=True, frozen=True)
class TrackingConfig:
    """Snapshot staleness and retention settings."""

    staleness_window_ms: int = DEFAULT_STALENESS_WINDOW_MS
    max_tracked_files: int | None = None


@dataclass(slots=True, frozen=True)
class EventsConfig:
    """Structured event log toggles."""

    enabled: bool = True


@dataclass(slots=True, frozen=True)
class TrackerConfig:
    """Fully merged tracker configuration."""

    working_directory: Path
    data_dir: Path
    tracking: TrackingConfig
    events: EventsConfig

    @property
    def events_path(self) -> Path:
        """Return on-disk JSONL event log path."""
        return self.data_dir / "events.jsonl"

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "working_directory": str(self.working_directory),
            "data_dir": str(self.data_dir),
            "tracking": {
                "staleness_window_ms": self.tracking.staleness_window_ms,
                "max_tracked_files": self.tracking.max_tracked_files,
            },
            "events": {
                "enabled": self.events.enabled,
            },
        }


@dataclass(slots=True, frozen=True)
class TrackerOverrides:
    """Optional programmatic overrides applied at highest precedence."""

    data_dir: Path | None = None
    staleness_window_ms: int | None = None
    max_tracked_files: int | None = None
    events_enabled: bool | None = None


def default_config(working_directory: Path) -> TrackerConfig:
    """Build default config for a given working directory."""
    resolved_root = working_directory.resolve()
    return TrackerConfig(
        working_directory=resolved_root,
        data_dir=resolved_root / ".change_plan",
        tracking=TrackingConfig(),
        events=EventsConfig(),
    )


def load_config_file(working_directory: Path) -> dict[str, object]:
    """Load optional change_plan.toml from the working directory."""
    config_path = working_directory / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: TrackerConfig, file_payload: dict[str, object], overrides: TrackerOverrides
) -> TrackerConfig:
    """Merge defaults, file config, then overrides."""
    tracking_payload = _get_table(file_payload, "tracking")
    events_payload = _get_table(file_payload, "events")

    staleness_window_ms = _optional_positive_int_with_cap(
        tracking_payload.get("staleness_window_ms"),
        "tracking.staleness_window_ms",
        base.tracking.staleness_window_ms,
        STALENESS_WINDOW_MS_CAP,
    )
    max_tracked_files = base.tracking.max_tracked_files
    if "max_tracked_files" in tracking_payload:
        max_tracked_files = _optional_positive_int_with_cap(
            tracking_payload["max_tracked_files"],
            "tracking.max_tracked_files",
            0,
            cap=None,
        )

    events_enabled = base.events.enabled
    if "enabled" in events_payload:
        raw_enabled = events_payload["enabled"]
        if not isinstance(raw_enabled, bool):
            raise ValueError("Config field 'events.enabled' must be a boolean.")
        events_enabled = raw_enabled

    merged = TrackerConfig(
        working_directory=base.working_directory,
        data_dir=base.data_dir,
        tracking=TrackingConfig(
            staleness_window_ms=staleness_window_ms,
            max_tracked_files=max_tracked_files,
        ),
        events=EventsConfig(enabled=events_enabled),
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: TrackerConfig, overrides: TrackerOverrides) -> TrackerConfig:
    """Apply programmatic overrides at highest precedence."""
    staleness_window_ms = _optional_positive_int_with_cap(
        overrides.staleness_window_ms,
        "overrides.staleness_window_ms",
        config.tracking.staleness_window_ms,
        STALENESS_WINDOW_MS_CAP,
    )
    max_tracked_files = config.tracking.max_tracked_files
    if overrides.max_tracked_files is not None:
        max_tracked_files = _optional_positive_int_with_cap(
            overrides.max_tracked_files,
            "overrides.max_tracked_files",
            0,
            cap=None,
        )
    events_enabled = (
        overrides.events_enabled
        if overrides.events_enabled is not None
        else config.events.enabled
    )
    data_dir = overrides.data_dir or config.data_dir
    return TrackerConfig(
        working_directory=config.working_directory,
        data_dir=data_dir.resolve(),
        tracking=TrackingConfig(
            staleness_window_ms=staleness_window_ms,
            max_tracked_files=max_tracked_files,
        ),
        events=EventsConfig(enabled=events_enabled),
    )


def load_effective_config(
    working_directory: Path, overrides: TrackerOverrides | None = None
) -> TrackerConfig:
    """Load effective config using merge order defaults -> file config -> overrides."""
    resolved_root = working_directory.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or TrackerOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value

"""Symbol-level change tracking and dependency-aware commit planning."""

from .tracker import ChangeTracker, TrackerContext, TrackerState, create_tracker

__all__ = ["ChangeTracker", "TrackerContext", "TrackerState", "create_tracker"]

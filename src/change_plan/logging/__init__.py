"""Structured logging utilities."""

from .events import JsonlEventLogger, TrackingEvent, sanitize_metadata, utc_timestamp

__all__ = ["JsonlEventLogger", "TrackingEvent", "sanitize_metadata", "utc_timestamp"]

"""Timestamp helpers for log directories and event records."""

from datetime import datetime


def now() -> str:
    """Compact timestamp for directory names, e.g. 20260101_120000."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def now_exact() -> str:
    """ISO 8601 timestamp with microseconds, for event records."""
    return datetime.now().isoformat()


def today() -> str:
    """Date stamp, e.g. 2026-01-01."""
    return datetime.now().strftime("%Y-%m-%d")

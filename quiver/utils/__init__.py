"""
Shared utilities for QUIVER.

Common functionality used across contexts:
- Logger setup and pipeline event logging
- LLM providers and response parsing
- Configuration presets and JSON artifact loading
"""

from quiver.utils.timestamp import now, now_exact, today

__all__ = ["now", "now_exact", "today"]

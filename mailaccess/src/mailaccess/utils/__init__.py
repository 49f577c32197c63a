"""Shared helpers for the mail access layer.

What:
  Re-export the structured logging facade used by every component.

Invariants & Safety:
  - Logging defaults emit redacted JSON lines; consumers should avoid bypassing
    these helpers.
"""

from .logging import JsonLogger, get_logger, set_default_level

__all__ = ["JsonLogger", "get_logger", "set_default_level"]

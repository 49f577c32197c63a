"""Structured JSON logging with redaction for the mail access layer.

What:
  Offer a tiny facade over Python streams so every component emits one JSON
  line per event with consistent fields and automatic removal of message
  content and secrets.

Why:
  The accessor touches personal mail. Logging a subject line or a password by
  accident would leak it into whatever collects the process output, so the
  redaction happens in one place instead of at every call site.

How:
  :class:`JsonLogger` builds a payload with timestamp, level, event name, and
  component, merges a recursively redacted copy of the keyword arguments, and
  writes it with :func:`json.dump`. Events under the configured threshold are
  dropped before serialisation.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`, :func:`set_default_level`.

Invariants & Safety:
  - ``subject``, ``body``, ``credential`` and ``password`` keys are replaced with
    ``[redacted]`` even inside nested dictionaries.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"

LEVELS: Dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}

_SENSITIVE_KEYS = frozenset({"subject", "body", "credential", "password"})

_default_level = "INFO"


def set_default_level(level: str) -> None:
    """Set the threshold used by loggers created afterwards."""

    global _default_level
    normalized = "WARN" if level.upper() == "WARNING" else level.upper()
    if normalized not in LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    _default_level = normalized


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON entries containing ``ts``, ``lvl``, ``msg`` and
      ``component`` plus any structured context.

    Why:
      Tests and operators parse these lines; a fixed schema avoids ad-hoc
      string matching.

    How:
      Stores the destination stream, component label, and threshold, and
      exposes :meth:`debug`, :meth:`info`, :meth:`warning` and :meth:`error`
      helpers on top of :meth:`log`.
    """

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "mailaccess"
    level: Optional[str] = None

    def enabled_for(self, level: str) -> bool:
        threshold = self.level or _default_level
        return LEVELS[level.upper()] >= LEVELS[threshold.upper()]

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Severity name (``DEBUG``, ``INFO``, ``WARN`` or ``ERROR``).
          message: Event name, e.g. ``"folder_opened"``.
          extra: Optional context dictionary that will be redacted recursively.
        """

        if not self.enabled_for(level):
            return
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive values masked."""

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in _SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Construct a :class:`JsonLogger` bound to ``component``.

    The level is resolved at emit time, so loggers created at import time pick
    up a later :func:`set_default_level` call.
    """

    return JsonLogger(component=component)

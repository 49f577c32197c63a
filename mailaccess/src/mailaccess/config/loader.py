"""Loader for the optional YAML configuration document.

What:
  Read a ``mailaccess`` configuration file, validate it against
  :class:`~mailaccess.config.schema.MailAccessConfig`, and apply the logging
  threshold it declares.

Why:
  Provider endpoints and the logical folder vocabulary differ between mail
  hosts. Keeping them in a validated document lets callers override the Gmail
  defaults without touching code.

How:
  Parse the file with PyYAML's ``safe_load``, feed the mapping to Pydantic, and
  convert every failure (missing file, bad YAML, schema violation) into
  :class:`ConfigLoadError` carrying the path.

Interfaces:
  :class:`ConfigLoadError`, :func:`load_config`, :func:`parse_config`.

Invariants:
  - Only an explicit path is read; no environment variables or default
    locations are consulted.
  - An empty document yields the defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import ValidationError

from ..errors import MailAccessError
from ..utils.logging import set_default_level
from .schema import MailAccessConfig


class ConfigLoadError(MailAccessError):
    """Raised when a configuration document cannot be read or validated."""


def parse_config(text: Union[str, bytes], *, source: str = "<string>") -> MailAccessConfig:
    """Validate YAML ``text`` and return the configuration model.

    Args:
      text: YAML document.
      source: Label used in error messages.

    Raises:
      ConfigLoadError: If the YAML is malformed or fails validation.
    """

    try:
        payload: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"Invalid YAML in {source}: {exc}") from exc
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ConfigLoadError(f"{source} must contain a mapping at the top level")
    try:
        return MailAccessConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigLoadError(f"Invalid configuration in {source}: {exc}") from exc


def load_config(path: Union[str, Path], *, apply_logging: bool = True) -> MailAccessConfig:
    """Load the configuration file at ``path``.

    When ``apply_logging`` is true the declared log level becomes the default
    threshold for loggers.

    Raises:
      ConfigLoadError: If the file is missing, unreadable, or invalid.
    """

    candidate = Path(path).expanduser()
    try:
        text = candidate.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Unable to read configuration {candidate}: {exc}") from exc
    config = parse_config(text, source=str(candidate))
    if apply_logging:
        set_default_level(config.logging.level)
    return config

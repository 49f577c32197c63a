"""Configuration models and loader.

What:
  Surface the provider settings (server endpoint, logical folder names) and the
  YAML loader used to override them.

Interfaces:
  :class:`ProviderSettings`, :class:`LoggingSettings`,
  :class:`MailAccessConfig`, :data:`GMAIL`, :func:`load_config`,
  :func:`parse_config`, :class:`ConfigLoadError`.
"""

from .loader import ConfigLoadError, load_config, parse_config
from .schema import GMAIL, LoggingSettings, MailAccessConfig, ProviderSettings

__all__ = [
    "ConfigLoadError",
    "GMAIL",
    "LoggingSettings",
    "MailAccessConfig",
    "ProviderSettings",
    "load_config",
    "parse_config",
]

"""Pydantic models describing provider and logging configuration."""
from __future__ import annotations

from typing import Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PORTS: Dict[str, int] = {"imaps": 993, "imap": 143}


class ProviderSettings(BaseModel):
    """Server endpoint and logical folder names for one mail provider."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    protocol: Literal["imaps", "imap"] = "imaps"
    server: str
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    folder_names: Dict[str, str] = Field(default_factory=lambda: {"inbox": "INBOX"})

    @field_validator("folder_names")
    @classmethod
    def _validate_folder_names(cls, value: Dict[str, str]) -> Dict[str, str]:
        for logical, path in value.items():
            if not logical or not path:
                raise ValueError("folder names must be non-empty strings")
        return value

    @property
    def ssl(self) -> bool:
        return self.protocol == "imaps"

    @property
    def resolved_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_PORTS[self.protocol]

    def resolve_folder(self, name: str) -> str:
        """Map a logical name such as ``"all"`` to the provider's folder path.

        Names without a mapping are returned unchanged so raw server paths can
        be used directly.
        """

        return self.folder_names.get(name, name)

    def with_folder_names(self, overrides: Mapping[str, str]) -> "ProviderSettings":
        """Return a copy whose folder mapping is updated with ``overrides``."""

        merged = dict(self.folder_names)
        merged.update(overrides)
        return self.model_copy(update={"folder_names": merged})


class LoggingSettings(BaseModel):
    """Threshold for the JSON logger."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARN", "WARNING", "ERROR"] = "INFO"


GMAIL = ProviderSettings(
    name="gmail",
    protocol="imaps",
    server="imap.gmail.com",
    folder_names={
        "inbox": "INBOX",
        "all": "[Gmail]/All Mail",
        "sent": "[Gmail]/Sent Mail",
        "spam": "[Gmail]/Spam",
    },
)


class MailAccessConfig(BaseModel):
    """Root configuration document."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    provider: ProviderSettings = GMAIL
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

"""
Module: tests/unit/test_config.py

What:
    Validate the provider defaults and the YAML configuration loader.

Why:
    A wrong default port or folder mapping silently points every helper at
    the wrong mailbox.

Interfaces:
    test_defaults_*, test_gmail_*, test_load_config_*
"""

import pytest
from pydantic import ValidationError

from mailaccess.config import ConfigLoadError, load_config, parse_config
from mailaccess.config.schema import GMAIL, MailAccessConfig, ProviderSettings
from mailaccess.utils.logging import JsonLogger


def test_defaults_use_gmail():
    config = MailAccessConfig()
    assert config.provider == GMAIL
    assert config.logging.level == "INFO"


def test_gmail_folder_mapping():
    assert GMAIL.server == "imap.gmail.com"
    assert GMAIL.ssl is True
    assert GMAIL.resolved_port == 993
    assert GMAIL.resolve_folder("inbox") == "INBOX"
    assert GMAIL.resolve_folder("all") == "[Gmail]/All Mail"
    assert GMAIL.resolve_folder("Labels/Work") == "Labels/Work"


def test_plain_imap_default_port():
    provider = ProviderSettings(name="local", protocol="imap", server="localhost")
    assert provider.ssl is False
    assert provider.resolved_port == 143


def test_provider_is_frozen():
    with pytest.raises(ValidationError):
        GMAIL.server = "elsewhere"


def test_parse_empty_document_gives_defaults():
    assert parse_config("") == MailAccessConfig()


def test_load_config_overrides_provider(tmp_path):
    path = tmp_path / "mailaccess.yml"
    path.write_text(
        "version: 1\n"
        "provider:\n"
        "  name: fastmail\n"
        "  protocol: imaps\n"
        "  server: imap.fastmail.com\n"
        "  port: 993\n"
        "  folder_names:\n"
        "    inbox: INBOX\n"
        "    all: Archive\n"
        "logging:\n"
        "  level: DEBUG\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.provider.server == "imap.fastmail.com"
    assert config.provider.resolve_folder("all") == "Archive"
    assert JsonLogger().enabled_for("DEBUG")


def test_load_config_without_applying_logging(tmp_path):
    path = tmp_path / "quiet.yml"
    path.write_text("logging:\n  level: ERROR\n", encoding="utf-8")
    load_config(path, apply_logging=False)
    assert JsonLogger().enabled_for("INFO")


@pytest.mark.parametrize(
    "document",
    [
        "provider:\n  name: x\n  protocol: pop3\n  server: mail.example.com\n",
        "provider:\n  name: x\n  server: mail.example.com\n  port: 70000\n",
        "provider:\n  name: x\n  server: mail.example.com\n  folder_names:\n    inbox: ''\n",
        "unknown_key: true\n",
        "logging:\n  component: other\n",
        "- just\n- a list\n",
        "provider: [unclosed\n",
    ],
)
def test_parse_config_rejects_invalid_documents(document):
    with pytest.raises(ConfigLoadError):
        parse_config(document, source="inline.yml")


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigLoadError) as excinfo:
        load_config(tmp_path / "absent.yml")
    assert "absent.yml" in str(excinfo.value)


def test_with_folder_names_returns_copy():
    updated = GMAIL.with_folder_names({"inbox": "Priority"})
    assert updated.resolve_folder("inbox") == "Priority"
    assert GMAIL.resolve_folder("inbox") == "INBOX"

"""Pytest fixtures for unit tests requiring the fake IMAP backend.

What:
  Expose a populated :class:`FakeImapBackend` and a :class:`Store` connected to
  it.

Why:
  Store, folder, and flag tests all need the same small mailbox layout; a
  fresh backend per test keeps them independent.

How:
  Append the unit directory to ``sys.path`` for the ``fakes`` import,
  monkeypatch ``mailaccess.imap.store.IMAPClient`` to return the backend, and
  connect through the public :meth:`Store.connect` so login runs as in
  production.

Folder layout::

  INBOX                 3 messages (uid 1 read, uid 2 and 3 unread)
  Archive               1 message
  Projects              \\HasChildren
  Projects/2026         \\HasNoChildren (no children)
  Projects/Legacy       \\Noinferiors
  [Gmail]               \\Noselect \\HasChildren
  [Gmail]/All Mail      4 messages
"""

import sys
from pathlib import Path

import pytest

from mailaccess.imap.store import Store

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend, build_message

FOLDER_NAMES = {"inbox": "INBOX", "all": "[Gmail]/All Mail", "archive": "Archive"}


@pytest.fixture
def backend() -> FakeImapBackend:
    fake = FakeImapBackend()
    fake.add_folder("INBOX")
    fake.add_folder("Archive")
    fake.add_folder("Projects", (b"\\HasChildren",))
    fake.add_folder("Projects/2026", (b"\\HasNoChildren",))
    fake.add_folder("Projects/Legacy", (b"\\HasNoChildren", b"\\Noinferiors"))
    fake.add_folder("[Gmail]", (b"\\Noselect", b"\\HasChildren"))
    fake.add_folder("[Gmail]/All Mail", (b"\\HasNoChildren",))
    fake.add_message("INBOX", build_message(subject="first", message_id="<m1@example.com>"), [b"\\Seen"])
    fake.add_message("INBOX", build_message(subject="second", message_id="<m2@example.com>"), [b"\\Recent"])
    fake.add_message(
        "INBOX",
        build_message(subject="third", message_id="<m3@example.com>", html="<p>third</p>"),
        ["$Important"],
    )
    fake.add_message("Archive", build_message(subject="archived", message_id="<a1@example.com>"), [b"\\Seen"])
    for index in range(4):
        fake.add_message("[Gmail]/All Mail", build_message(subject=f"all {index}", message_id=f"<all{index}@example.com>"))
    return fake


@pytest.fixture
def connect(backend: FakeImapBackend, monkeypatch: pytest.MonkeyPatch):
    """Return a factory connecting a :class:`Store` to the fake backend."""

    opened = []

    def factory(credential: str = "secret", **kwargs) -> Store:
        kwargs.setdefault("folder_names", FOLDER_NAMES)
        store = Store.connect("imaps", "imap.example.com", "user@example.com", credential, **kwargs)
        opened.append(store)
        return store

    monkeypatch.setattr("mailaccess.imap.store.IMAPClient", lambda host, port, ssl: backend)
    yield factory
    for store in opened:
        store.close()


@pytest.fixture
def store(connect) -> Store:
    return connect()

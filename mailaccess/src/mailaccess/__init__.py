"""
Module: mailaccess.__init__

What:
  Aggregate the public surface of the mail access layer: the IMAP store and
  folder session objects, the flag model, the MIME normaliser, and the message
  accessor that turns a raw message into a uniform record.

Why:
  Importers should not need to know which submodule defines a name. The
  package root re-exports the entry points used by scripts and tests while the
  internal layout stays free to evolve.

How:
  Explicit imports plus ``__all__``. Submodules remain importable directly
  (``mailaccess.mime``, ``mailaccess.imap.folder`` ...).

Interfaces:
  - imap: :class:`Store`, :class:`Folder`, scoped helpers.
  - flags / mime / accessor: message normalisation.
  - fixtures: file-backed messages.
  - api: folder-name based conveniences.
  - config / utils: provider configuration and JSON logging.
"""

from .accessor import ErrorRecord, MessageRecord, read_message
from .errors import (
    AuthenticationError,
    ExtractionError,
    FolderNotFoundError,
    MailAccessError,
    MessageNotFoundError,
    RecordError,
    StateError,
)
from .fixtures import read_message_from_file, save_messages_to_dir, write_message_to_dir
from .flags import FlagSet, FlagTerm, SystemFlag, has_flag, mark_all_read, set_flag
from .imap import Folder, FolderMode, Store, gmail_store, store_scope
from .message import MailMessage

__version__ = "0.3.0"

__all__ = [
    "AuthenticationError",
    "ErrorRecord",
    "ExtractionError",
    "FlagSet",
    "FlagTerm",
    "Folder",
    "FolderMode",
    "FolderNotFoundError",
    "MailAccessError",
    "MailMessage",
    "MessageNotFoundError",
    "MessageRecord",
    "RecordError",
    "StateError",
    "Store",
    "SystemFlag",
    "gmail_store",
    "has_flag",
    "mark_all_read",
    "read_message",
    "read_message_from_file",
    "save_messages_to_dir",
    "set_flag",
    "store_scope",
    "write_message_to_dir",
]

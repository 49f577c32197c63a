"""Convenience entry points over stores and folders.

What:
  Folder-name based helpers for the common reading tasks: newest-first
  listings, normalised records for a folder or the inbox, unread messages,
  counts, and marking a folder read.

Why:
  Scripts usually want "the last ten messages in the inbox" rather than the
  open/search/close choreography. Each helper takes an explicit ``store`` or,
  when omitted, the one bound by :func:`mailaccess.imap.store_scope`.

How:
  Helpers resolve the logical folder name through the store's provider
  mapping, open the folder in the least privileged mode they need, and hand
  message handles to :func:`mailaccess.accessor.read_message`.

Interfaces:
  :func:`all_messages`, :func:`read_messages`, :func:`inbox`,
  :func:`unread_messages`, :func:`message_count`, :func:`mark_folder_read`,
  :func:`list_folders`.

Invariants & Safety:
  - :func:`all_messages` returns handles newest first (reverse server order).
  - Listing helpers leave the folder open read-only so the returned handles can
    still fetch their bodies; opening another folder on the store closes it.
"""
from __future__ import annotations

from typing import List, Optional, Union

from . import flags
from .accessor import ErrorRecord, MessageRecord, read_message
from .imap.context import resolve_store
from .imap.folder import Folder, FolderMode, FolderNode, folder_scope, list_folders_recursive
from .imap.store import Store
from .message import MailMessage

Record = Union[MessageRecord, ErrorRecord]


def _open(folder_name: str, store: Optional[Store], mode: FolderMode) -> Folder:
    folder = resolve_store(store).get_folder(folder_name)
    folder.open(mode)
    return folder


def all_messages(folder_name: str, store: Optional[Store] = None) -> List[MailMessage]:
    """Return every message handle in ``folder_name``, newest first."""

    folder = _open(folder_name, store, FolderMode.READ_ONLY)
    return list(reversed(folder.get_messages()))


def read_messages(folder_name: str, limit: int, store: Optional[Store] = None) -> List[Record]:
    """Return records for the ``limit`` newest messages of ``folder_name``."""

    if limit < 0:
        raise ValueError("limit must not be negative")
    return [read_message(message) for message in all_messages(folder_name, store)[:limit]]


def inbox(limit: int, store: Optional[Store] = None) -> List[Record]:
    """Return records for the ``limit`` newest inbox messages.

    What:
      Shorthand for :func:`read_messages` on the logical ``inbox`` folder.

    Args:
      limit: Maximum number of records; must not be negative.
      store: Explicit store; defaults to the ambient one.
    """

    return read_messages("inbox", limit, store)


def unread_messages(folder_name: str, store: Optional[Store] = None) -> List[Record]:
    """Return records for the unread messages of ``folder_name`` in server order."""

    folder = _open(folder_name, store, FolderMode.READ_ONLY)
    return [read_message(message) for message in folder.unread_messages()]


def message_count(folder_name: str, store: Optional[Store] = None) -> int:
    """Return the message count of ``folder_name``.

    Opens the folder read-only for the call and closes it afterwards.

    Args:
      folder_name: Logical name or raw server path.
      store: Explicit store; defaults to the ambient one.
    """

    with folder_scope(folder_name, FolderMode.READ_ONLY, store) as folder:
        return folder.message_count()


def mark_folder_read(folder_name: str, store: Optional[Store] = None) -> None:
    """Mark all unread messages of ``folder_name`` as read (best effort, not atomic)."""

    with folder_scope(folder_name, FolderMode.READ_WRITE, store) as folder:
        flags.mark_all_read(folder)


def list_folders(store: Optional[Store] = None) -> List[FolderNode]:
    """Return the store's full folder tree."""

    return list_folders_recursive(resolve_store(store))

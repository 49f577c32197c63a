"""Folder abstraction over a selected IMAP mailbox.

What:
  Model a named, hierarchical container of messages with an explicit
  ``Closed -> Open(mode) -> Closed`` lifecycle, plus the operations that need an
  open folder: counts, UID and sequence lookups, flag searches, flag updates,
  and the recursive folder listing.

Why:
  An IMAP connection has exactly one selected mailbox and sequence numbers are
  only meaningful while it stays selected. Making the open state explicit lets
  every operation fail loudly with :class:`~mailaccess.errors.StateError`
  instead of silently running against whichever mailbox happens to be
  selected.

How:
  Each :class:`Folder` delegates to the owning store's ``imapclient``
  connection. :meth:`Folder.open` asks the store to make it the active folder,
  which closes any other folder open on the same connection. Searches and
  listings return :class:`~mailaccess.message.MailMessage` handles carrying
  UID, sequence number, flags, and INTERNALDATE; bodies are fetched lazily
  with ``BODY.PEEK[]`` so reading never marks a message as seen.

Interfaces:
  :class:`FolderMode`, :class:`FolderType`, :class:`Folder`,
  :class:`FolderNode`, :func:`list_folders_recursive`, :func:`folder_scope`.

Invariants & Safety:
  - Every operation except :meth:`Folder.open` and :meth:`Folder.list`
    requires the folder to be open; mutations additionally require
    :attr:`FolderMode.READ_WRITE`.
  - Closing never expunges unless ``expunge=True`` is passed; deleting a
    message only sets ``\\Deleted``.
  - All message addressing is UID based; sequence numbers are derived from the
    server's fetch response and reported for information only.
"""
from __future__ import annotations

import contextlib
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Sequence, Union

from imapclient.exceptions import IMAPClientError

from ..errors import FolderNotFoundError, MessageNotFoundError, StateError
from ..flags import Flag, FlagSet, FlagTerm, SystemFlag
from ..message import MailMessage
from ..utils.logging import get_logger
from .context import resolve_store

if TYPE_CHECKING:
    from imapclient import IMAPClient

    from .store import Store

_LOGGER = get_logger("mailaccess.folder")

_FETCH_META = [b"FLAGS", b"INTERNALDATE"]
_FETCH_BODY = [b"BODY.PEEK[]"]


class FolderMode(enum.Enum):
    READ_ONLY = "readonly"
    READ_WRITE = "readwrite"


class FolderType(enum.IntFlag):
    """Capability bits derived from the ``LIST`` attributes of a folder."""

    HOLDS_MESSAGES = 1
    HOLDS_FOLDERS = 2

    @classmethod
    def from_attributes(cls, attributes: Iterable[Union[bytes, str]]) -> "FolderType":
        names = {_decode(attribute).lower() for attribute in attributes}
        value = cls.HOLDS_MESSAGES | cls.HOLDS_FOLDERS
        if "\\noinferiors" in names:
            value &= ~cls.HOLDS_FOLDERS
        if "\\noselect" in names or "\\nonexistent" in names:
            value &= ~cls.HOLDS_MESSAGES
        return cls(value)


def _decode(value: Union[bytes, str, None]) -> str:
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def _as_mode(mode: Union[FolderMode, str]) -> FolderMode:
    return mode if isinstance(mode, FolderMode) else FolderMode(mode)


class Folder:
    """A named folder inside a :class:`~mailaccess.imap.store.Store`.

    The default (root) folder has an empty ``full_name``; it can be listed but
    never opened.
    """

    def __init__(
        self,
        store: "Store",
        full_name: str,
        *,
        delimiter: Optional[str] = None,
        attributes: Optional[Sequence[Union[bytes, str]]] = None,
    ):
        self._store = store
        self._full_name = full_name
        self._delimiter = delimiter
        self._attributes = tuple(attributes) if attributes is not None else None
        self._mode: Optional[FolderMode] = None
        self._select_info: Dict[bytes, Any] = {}

    def __repr__(self) -> str:
        state = self._mode.value if self._mode else "closed"
        return f"Folder({self._full_name!r}, {state})"

    # Identity ------------------------------------------------------------
    @property
    def store(self) -> "Store":
        return self._store

    @property
    def full_name(self) -> str:
        return self._full_name

    @property
    def delimiter(self) -> str:
        if self._delimiter is None:
            self._delimiter = self._store.delimiter
        return self._delimiter

    @property
    def name(self) -> str:
        """Last path segment of :attr:`full_name`."""

        if not self._full_name:
            return ""
        return self._full_name.rsplit(self.delimiter, 1)[-1]

    @property
    def type(self) -> FolderType:
        if not self._full_name:
            return FolderType.HOLDS_FOLDERS
        if self._attributes is None:
            self._attributes = self._lookup_attributes()
        return FolderType.from_attributes(self._attributes)

    def is_sub_folder(self) -> bool:
        """Return ``True`` when this folder may contain other folders."""

        return bool(self.type & FolderType.HOLDS_FOLDERS)

    def _lookup_attributes(self) -> Sequence[bytes]:
        for attributes, _, name in self._client().list_folders("", self._full_name):
            if _decode(name) == self._full_name:
                return tuple(attributes)
        raise FolderNotFoundError(self._full_name)

    # State ---------------------------------------------------------------
    @property
    def mode(self) -> Optional[FolderMode]:
        return self._mode

    @property
    def is_open(self) -> bool:
        """``True`` while this folder is selected on a live connection."""

        return self._mode is not None and self._store.is_connected()

    @property
    def uid_validity(self) -> Optional[int]:
        return self._select_info.get(b"UIDVALIDITY")

    def require_open(self) -> None:
        if not self.is_open:
            raise StateError(f"Folder {self._full_name!r} is not open")

    def require_writable(self) -> None:
        """Raise :class:`StateError` unless the folder is open read-write."""

        self.require_open()
        if self._mode is not FolderMode.READ_WRITE:
            raise StateError(f"Folder {self._full_name!r} is open read-only")

    def _client(self) -> "IMAPClient":
        return self._store.client

    def open(self, mode: Union[FolderMode, str] = FolderMode.READ_ONLY) -> "Folder":
        """Select the folder on the server in ``mode``.

        Any other folder open on the same store is closed first.

        Raises:
          StateError: If this is the root folder, the folder is already open,
            or the store is disconnected.
          FolderNotFoundError: If the server refuses to select the folder.
        """

        mode = _as_mode(mode)
        if not self._full_name:
            raise StateError("The default folder cannot be opened")
        if self.is_open:
            raise StateError(f"Folder {self._full_name!r} is already open")
        client = self._client()
        self._store._activate(self)
        try:
            info = client.select_folder(self._full_name, readonly=mode is FolderMode.READ_ONLY)
        except IMAPClientError as exc:
            self._store._deactivate(self)
            raise FolderNotFoundError(self._full_name) from exc
        self._select_info = dict(info or {})
        self._mode = mode
        _LOGGER.debug("folder_opened", folder=self._full_name, mode=mode.value)
        return self

    def close(self, expunge: bool = False) -> None:
        """Deselect the folder.

        Without ``expunge`` messages flagged ``\\Deleted`` stay in the mailbox:
        read-write folders are released with ``UNSELECT`` when available, or by
        re-selecting read-only before ``CLOSE``.
        """

        self.require_open()
        client = self._client()
        try:
            if expunge or self._mode is FolderMode.READ_ONLY:
                client.close_folder()
            elif client.has_capability("UNSELECT"):
                client.unselect_folder()
            else:
                client.select_folder(self._full_name, readonly=True)
                client.close_folder()
        finally:
            self._mark_closed()
            self._store._deactivate(self)
        _LOGGER.debug("folder_closed", folder=self._full_name, expunge=expunge)

    def _mark_closed(self) -> None:
        self._mode = None
        self._select_info = {}

    # Listing -------------------------------------------------------------
    def list(self) -> List["Folder"]:
        """Return the immediate children of this folder."""

        client = self._client()
        prefix = f"{self._full_name}{self.delimiter}" if self._full_name else ""
        children: List[Folder] = []
        for attributes, delimiter, name in client.list_folders("", f"{prefix}%"):
            full_name = _decode(name)
            if full_name == self._full_name:
                continue
            children.append(
                Folder(
                    self._store,
                    full_name,
                    delimiter=_decode(delimiter) or self.delimiter,
                    attributes=attributes,
                )
            )
        return children

    # Counts --------------------------------------------------------------
    def _status(self, item: str) -> int:
        self.require_open()
        response = self._client().folder_status(self._full_name, [item])
        return int(response[item.encode("ascii")])

    def message_count(self) -> int:
        """Return the server's ``STATUS MESSAGES`` count.

        What:
          Issues ``STATUS`` for this folder, so the number reflects the server
          now rather than the ``SELECT`` snapshot.

        Raises:
          StateError: If the folder is not open.
        """

        return self._status("MESSAGES")

    def unread_message_count(self) -> int:
        """Return the ``STATUS UNSEEN`` count."""

        return self._status("UNSEEN")

    def new_message_count(self) -> int:
        """Return the ``STATUS RECENT`` count."""

        return self._status("RECENT")

    # Messages ------------------------------------------------------------
    def _handles(self, uids: Iterable[int]) -> List[MailMessage]:
        ordered = sorted(uids)
        if not ordered:
            return []
        response = self._client().fetch(ordered, _FETCH_META)
        handles: List[MailMessage] = []
        for uid in ordered:
            data = response.get(uid)
            if data is None:
                # Expunged between SEARCH and FETCH.
                continue
            internaldate = data.get(b"INTERNALDATE")
            handles.append(
                MailMessage(
                    uid=uid,
                    sequence=data.get(b"SEQ"),
                    flags=FlagSet.from_imap(data.get(b"FLAGS", ())),
                    internaldate=internaldate if isinstance(internaldate, datetime) else None,
                    folder=self,
                )
            )
        return handles

    def get_messages(self) -> List[MailMessage]:
        """Return handles for every message in server order."""

        self.require_open()
        return self._handles(self._client().search(["ALL"]))

    def get_message(self, sequence: int) -> MailMessage:
        """Return the message at 1-based ``sequence`` in this session.

        Raises:
          IndexError: If ``sequence`` is outside ``1..message_count``.
        """

        self.require_open()
        uids = sorted(self._client().search(["ALL"]))
        if not 1 <= sequence <= len(uids):
            raise IndexError(f"Message number {sequence} out of range 1..{len(uids)}")
        return self._handles([uids[sequence - 1]])[0]

    def get_message_by_uid(self, uid: int) -> Optional[MailMessage]:
        """Return the message with ``uid`` or ``None`` when it does not exist."""

        self.require_open()
        handles = self._handles([uid])
        return handles[0] if handles else None

    def get_uid(self, message: MailMessage) -> int:
        """Return the UID of a handle produced by this folder.

        Args:
          message: Handle obtained from this folder.

        Raises:
          StateError: If the handle belongs to another folder or has no UID.
        """

        if message.folder is not self or message.uid is None:
            raise StateError("Message does not belong to this folder")
        return message.uid

    def search(self, term: FlagTerm) -> List[MailMessage]:
        """Return messages matching a flag predicate, in server order."""

        self.require_open()
        return self._handles(self._client().search(term.criteria()))

    def unread_messages(self) -> List[MailMessage]:
        """Return handles lacking ``\\Seen``, in server order."""

        return self.search(FlagTerm(SystemFlag.SEEN, present=False))

    def fetch_raw(self, message: MailMessage) -> bytes:
        """Download the full RFC 822 bytes of ``message`` without setting ``\\Seen``."""

        self.require_open()
        uid = self.get_uid(message)
        data = self._client().fetch([uid], _FETCH_BODY).get(uid)
        if data is None or b"BODY[]" not in data:
            raise MessageNotFoundError(self._full_name, uid)
        return data[b"BODY[]"]

    def store_flag(self, message: MailMessage, flag: Flag, value: bool) -> None:
        """Add or remove ``flag`` on the server and refresh ``message.flags``."""

        self.require_writable()
        uid = self.get_uid(message)
        wire = flag.value if isinstance(flag, SystemFlag) else flag
        client = self._client()
        if value:
            response = client.add_flags([uid], [wire])
        else:
            response = client.remove_flags([uid], [wire])
        flags = (response or {}).get(uid)
        if flags is None:
            flags = client.get_flags([uid]).get(uid, ())
        message.flags = FlagSet.from_imap(flags)
        _LOGGER.debug("flag_stored", folder=self._full_name, uid=uid, flag=str(wire), value=value)

    def delete_message(self, uid: int) -> None:
        """Set ``\\Deleted`` on the message with ``uid``; nothing is expunged.

        Raises:
          MessageNotFoundError: If no such UID exists.
        """

        self.require_writable()
        message = self.get_message_by_uid(uid)
        if message is None:
            raise MessageNotFoundError(self._full_name, uid)
        self.store_flag(message, SystemFlag.DELETED, True)


@dataclass
class FolderNode:
    """Entry of the tree returned by :func:`list_folders_recursive`.

    ``children`` is ``None`` for folders that cannot hold sub-folders and a
    (possibly empty) list otherwise.
    """

    name: str
    full_name: str
    children: Optional[List["FolderNode"]] = None


def list_folders_recursive(store: "Store", folder: Optional[Folder] = None) -> List[FolderNode]:
    """Return the folder tree below ``folder`` (the store root by default)."""

    root = folder if folder is not None else store.default_folder()
    nodes: List[FolderNode] = []
    for child in root.list():
        children = list_folders_recursive(store, child) if child.is_sub_folder() else None
        nodes.append(FolderNode(child.name, child.full_name, children))
    return nodes


@contextlib.contextmanager
def folder_scope(
    name: str,
    mode: Union[FolderMode, str] = FolderMode.READ_ONLY,
    store: Optional["Store"] = None,
) -> Iterator[Folder]:
    """Open folder ``name`` for the block and close it on every exit path."""

    folder = resolve_store(store).get_folder(name)
    folder.open(mode)
    try:
        yield folder
    finally:
        if folder.is_open:
            folder.close()

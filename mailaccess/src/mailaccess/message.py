"""Raw message handle shared by live folders and fixture files.

What:
  :class:`MailMessage` is the opaque reference the rest of the library passes
  around: a UID and sequence number inside a folder, the flags and
  INTERNALDATE reported by the server, and the raw RFC 822 bytes.

Why:
  Listing a large folder should not download every body. The handle therefore
  carries only metadata until content is first needed, then fetches the bytes
  once, parses them once, and builds the MIME tree once. Handles read from disk
  start with their bytes already present, so live and file-backed messages are
  interchangeable.

How:
  ``raw`` is fetched lazily through the owning folder (which enforces that it is
  still open). ``parsed`` uses :class:`email.parser.BytesParser` with
  ``policy.default``; ``tree`` is built with :func:`mailaccess.mime.build_tree`.

Interfaces:
  :class:`MailMessage`.

Invariants & Safety:
  - ``raw`` is never modified; :meth:`write_to` emits it byte-for-byte.
  - Content of a handle whose folder was closed before the first read is
    unavailable and raises :class:`~mailaccess.errors.StateError`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional

from .errors import StateError
from .flags import FlagSet
from .mime import MimeNode, build_tree

if TYPE_CHECKING:
    from .imap.folder import Folder


@dataclass(eq=False)
class MailMessage:
    """Handle on one message in a folder or on disk.

    Attributes:
      uid: Server UID, stable within the folder's UIDVALIDITY epoch.
      sequence: 1-based position in the folder when the handle was listed;
        only meaningful while that folder session stays open.
      flags: Last flag snapshot received from the server.
      internaldate: Server-side arrival time, when known.
      folder: Owning folder, or ``None`` for file-backed messages.
      path: Source file for file-backed messages.
    """

    uid: Optional[int] = None
    sequence: Optional[int] = None
    flags: FlagSet = field(default_factory=FlagSet)
    internaldate: Optional[datetime] = None
    folder: Optional["Folder"] = None
    path: Optional[Path] = None
    _raw: Optional[bytes] = field(default=None, repr=False)
    _parsed: Optional[EmailMessage] = field(default=None, init=False, repr=False)
    _tree: Optional[MimeNode] = field(default=None, init=False, repr=False)

    @classmethod
    def from_bytes(cls, raw: bytes, *, path: Optional[Path] = None) -> "MailMessage":
        """Wrap raw RFC 822 bytes in a detached handle."""

        return cls(path=path, _raw=bytes(raw))

    @property
    def raw(self) -> bytes:
        """Raw message bytes, fetched from the folder on first access."""

        if self._raw is None:
            if self.folder is None:
                raise StateError("Message content is not available")
            self._raw = self.folder.fetch_raw(self)
        return self._raw

    @property
    def parsed(self) -> EmailMessage:
        if self._parsed is None:
            self._parsed = BytesParser(policy=policy.default).parsebytes(self.raw)
        return self._parsed

    @property
    def tree(self) -> MimeNode:
        if self._tree is None:
            self._tree = build_tree(self.parsed)
        return self._tree

    def write_to(self, stream: BinaryIO) -> None:
        """Write the raw bytes to ``stream``, fetching them first if needed."""

        stream.write(self.raw)

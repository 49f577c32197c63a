"""Exception hierarchy shared by the mail access layer.

What:
  Define the error kinds surfaced by the store, folder, and message
  normalisation layers.

Why:
  Callers must be able to tell a rejected login apart from a misuse of folder
  state, and a single unreadable header apart from an unreadable message. A
  small typed hierarchy keeps those cases distinguishable without string
  matching.

How:
  Every error derives from :class:`MailAccessError`. Extraction and record
  errors carry the failing field or the underlying cause so the accessor can
  return them as values instead of raising them.

Interfaces:
  :class:`MailAccessError`, :class:`AuthenticationError`, :class:`StateError`,
  :class:`FolderNotFoundError`, :class:`MessageNotFoundError`,
  :class:`ExtractionError`, :class:`RecordError`.

Invariants & Safety:
  - :class:`AuthenticationError` keeps the account e-mail only; the secret used
    for the failed login is never stored on the exception or in its message.
"""
from __future__ import annotations

from typing import Optional


class MailAccessError(Exception):
    """Base class for every error raised by :mod:`mailaccess`."""


class AuthenticationError(MailAccessError):
    """Raised when the server rejects the supplied credentials.

    Attributes:
      email: Account identifier used for the login attempt.
      server: Host that rejected the login, when known.
    """

    def __init__(self, email: str, server: Optional[str] = None):
        self.email = email
        self.server = server
        where = f" on {server}" if server else ""
        super().__init__(f"Invalid credentials for {email}{where}")


class StateError(MailAccessError):
    """Raised when a store or folder is not in the state an operation needs."""


class FolderNotFoundError(MailAccessError):
    """Raised when a named folder does not exist under the store root."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Folder not found: {name}")


class MessageNotFoundError(MailAccessError, LookupError):
    """Raised when no message with the requested UID exists in the folder."""

    def __init__(self, folder: str, uid: int):
        self.folder = folder
        self.uid = uid
        super().__init__(f"No message with UID {uid} in {folder}")


class ExtractionError(MailAccessError):
    """A single field could not be read from a message.

    The accessor converts this into an absent field; it never escapes
    :func:`mailaccess.accessor.read_message`.
    """

    def __init__(self, field: str, reason: str = "unavailable"):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class RecordError(MailAccessError):
    """The whole message record could not be built.

    Returned inside :class:`mailaccess.accessor.ErrorRecord` rather than raised.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Could not read message: {cause}")
        self.__cause__ = cause


__all__ = [
    "MailAccessError",
    "AuthenticationError",
    "StateError",
    "FolderNotFoundError",
    "MessageNotFoundError",
    "ExtractionError",
    "RecordError",
]

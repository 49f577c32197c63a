"""Authenticated mail store session.

What:
  Wrap one ``imapclient.IMAPClient`` connection: log in, expose the default
  (root) folder and named folders, and track which folder currently owns the
  connection's selected mailbox.

Why:
  Callers need a single object whose lifetime bounds every folder and message
  handle derived from it. Closing the store must invalidate its folders, and a
  rejected login must surface as a typed error rather than a half-built
  session.

How:
  :meth:`Store.connect` builds a :class:`~mailaccess.config.ProviderSettings`
  (or takes one through :meth:`Store.for_provider`), opens the connection with
  the provider's port and TLS setting, and logs in. ``LoginError`` from
  ``imapclient`` becomes :class:`~mailaccess.errors.AuthenticationError`.
  Logical folder names are resolved through the provider's mapping.

Interfaces:
  :class:`Store`, :func:`gmail_store`.

Invariants & Safety:
  - At most one folder per store is open; opening another closes it first.
  - :meth:`Store.close` is idempotent and always drops the connection, even if
    ``LOGOUT`` fails.
  - The credential is only passed to ``login``; it is never kept on the store
    or logged.
"""
from __future__ import annotations

import contextlib
from typing import Mapping, Optional

from imapclient import IMAPClient
from imapclient.exceptions import LoginError

from ..config.schema import GMAIL, ProviderSettings
from ..errors import AuthenticationError, StateError
from ..utils.logging import get_logger
from .folder import Folder

_LOGGER = get_logger("mailaccess.store")

DEFAULT_DELIMITER = "/"


class Store:
    """Connection to a mail server for one account."""

    def __init__(self, provider: ProviderSettings, email: str):
        self._provider = provider
        self._email = email
        self._client: Optional[IMAPClient] = None
        self._delimiter: Optional[str] = None
        self._active: Optional[Folder] = None

    @classmethod
    def connect(
        cls,
        protocol: str,
        server: str,
        email: str,
        credential: str,
        *,
        port: Optional[int] = None,
        folder_names: Optional[Mapping[str, str]] = None,
    ) -> "Store":
        """Open and authenticate a session against ``server``.

        Args:
          protocol: ``"imaps"`` (TLS) or ``"imap"``.
          server: Host name of the IMAP server.
          email: Login name.
          credential: Password or app token; used once and not retained.
          port: Override for the protocol's default port.
          folder_names: Logical-name mapping (``inbox``, ``all`` ...).

        Raises:
          AuthenticationError: If the server rejects the credentials.
        """

        provider = ProviderSettings(
            name=server,
            protocol=protocol,
            server=server,
            port=port,
            folder_names=dict(folder_names) if folder_names else {"inbox": "INBOX"},
        )
        return cls.for_provider(provider, email, credential)

    @classmethod
    def for_provider(cls, provider: ProviderSettings, email: str, credential: str) -> "Store":
        """Connect and log in to ``provider``.

        Args:
          provider: Endpoint and folder mapping.
          email: Login name.
          credential: Password or app password; never logged.

        Raises:
          AuthenticationError: If the server rejects the login.
        """

        store = cls(provider, email)
        store._login(credential)
        return store

    def _login(self, credential: str) -> None:
        if self._client is not None:
            raise StateError("Store is already connected")
        client = IMAPClient(self._provider.server, port=self._provider.resolved_port, ssl=self._provider.ssl)
        # INTERNALDATE must keep its server offset.
        client.normalise_times = False
        try:
            client.login(self._email, credential)
        except LoginError as exc:
            _LOGGER.warning("login_rejected", server=self._provider.server, email=self._email)
            with contextlib.suppress(OSError):
                client.shutdown()
            raise AuthenticationError(self._email, self._provider.server) from exc
        self._client = client
        _LOGGER.info("store_connected", server=self._provider.server, email=self._email)

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        """Close the store; while another exception propagates, close errors are only logged."""

        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except Exception as close_exc:
            _LOGGER.warning(
                "close_failed",
                server=self._provider.server,
                error=type(close_exc).__name__,
                pending=exc_type.__name__,
            )

    def __repr__(self) -> str:
        state = "connected" if self.is_connected() else "closed"
        return f"Store({self._provider.server!r}, {self._email!r}, {state})"

    @property
    def provider(self) -> ProviderSettings:
        return self._provider

    @property
    def email(self) -> str:
        return self._email

    @property
    def client(self) -> IMAPClient:
        """The underlying ``IMAPClient``.

        Raises:
          StateError: If the store is closed.
        """

        if self._client is None:
            raise StateError("Store is not connected")
        return self._client

    def is_connected(self) -> bool:
        return self._client is not None

    def require_connected(self) -> None:
        """Raise :class:`StateError` when the store has been closed."""

        if self._client is None:
            raise StateError("Store is not connected")

    def close(self) -> None:
        """Log out and drop the connection; calling it again is a no-op."""

        if self._client is None:
            return
        client = self._client
        if self._active is not None:
            self._active._mark_closed()
            self._active = None
        try:
            client.logout()
        finally:
            self._client = None
            _LOGGER.info("store_closed", server=self._provider.server)

    @property
    def delimiter(self) -> str:
        """Hierarchy delimiter reported by the server (``/`` if it reports none)."""

        if self._delimiter is None:
            delimiter = None
            for _, reported, _ in self.client.list_folders("", ""):
                if reported:
                    delimiter = reported.decode() if isinstance(reported, bytes) else str(reported)
                    break
            self._delimiter = delimiter or DEFAULT_DELIMITER
        return self._delimiter

    def default_folder(self) -> Folder:
        """Return the closed root folder of the store's namespace."""

        self.require_connected()
        return Folder(self, "", delimiter=self.delimiter)

    def get_folder(self, name: str) -> Folder:
        """Return the closed folder for a logical or literal ``name``."""

        self.require_connected()
        return Folder(self, self._provider.resolve_folder(name))

    def _activate(self, folder: Folder) -> None:
        if self._active is not None and self._active is not folder and self._active.is_open:
            _LOGGER.debug("folder_displaced", folder=self._active.full_name, by=folder.full_name)
            self._active.close()
        self._active = folder

    def _deactivate(self, folder: Folder) -> None:
        if self._active is folder:
            self._active = None


def gmail_store(email: str, credential: str, *, provider: ProviderSettings = GMAIL) -> Store:
    """Connect to Gmail's IMAP endpoint with its folder-name mapping."""

    return Store.for_provider(provider, email, credential)

"""Message flag model: canonical flag sets, predicates, and mutations.

What:
  Represent IMAP system flags (``\\Seen``, ``\\Answered`` ...) and user keywords
  as an immutable :class:`FlagSet`, answer flag predicates for a message
  handle, and push flag changes to the server.

Why:
  Servers report flags as raw byte strings with inconsistent casing, while
  callers think in terms of "read", "answered" or a named keyword. Normalising
  in one place keeps predicates and search criteria consistent. Flag changes
  are always a server round-trip so the handle never drifts from the store.

How:
  :func:`normalize_flag` maps any accepted spelling to a :class:`SystemFlag`
  member or a user keyword. Mutations delegate to the owning folder, which
  enforces the read-write requirement and refreshes the handle from the server
  reply.

Interfaces:
  :class:`SystemFlag`, :class:`FlagSet`, :class:`FlagTerm`,
  :func:`normalize_flag`, :func:`has_flag`, :func:`user_flags`,
  :func:`is_read`, :func:`is_answered`, :func:`is_recent`, :func:`set_flag`,
  :func:`mark_all_read`.

Invariants & Safety:
  - ``\\Recent`` is server-managed and can never be set or cleared by a client.
  - :func:`mark_all_read` is a sequential loop without rollback: a failure
    leaves the already-updated prefix marked as read and re-raises.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Set, Union

from .errors import StateError
from .utils.logging import get_logger

if TYPE_CHECKING:
    from .imap.folder import Folder
    from .message import MailMessage

_LOGGER = get_logger("mailaccess.flags")


class SystemFlag(enum.Enum):
    """IMAP system flags, valued by their wire spelling."""

    SEEN = "\\Seen"
    ANSWERED = "\\Answered"
    DELETED = "\\Deleted"
    RECENT = "\\Recent"
    DRAFT = "\\Draft"
    FLAGGED = "\\Flagged"


Flag = Union[SystemFlag, str]

_SEARCH_KEYS = {
    SystemFlag.SEEN: ("SEEN", "UNSEEN"),
    SystemFlag.ANSWERED: ("ANSWERED", "UNANSWERED"),
    SystemFlag.DELETED: ("DELETED", "UNDELETED"),
    SystemFlag.DRAFT: ("DRAFT", "UNDRAFT"),
    SystemFlag.FLAGGED: ("FLAGGED", "UNFLAGGED"),
    SystemFlag.RECENT: ("RECENT", "OLD"),
}


def normalize_flag(flag: Union[Flag, bytes]) -> Flag:
    """Return the canonical form of ``flag``.

    ``"SEEN"``, ``"seen"``, ``"\\Seen"``, ``b"\\Seen"`` and ``SystemFlag.SEEN``
    all map to :attr:`SystemFlag.SEEN`. Anything else is a user keyword and is
    returned as a stripped string with its original casing.

    Raises:
      ValueError: If ``flag`` is empty.
    """

    if isinstance(flag, SystemFlag):
        return flag
    if isinstance(flag, bytes):
        flag = flag.decode("utf-8", errors="replace")
    text = flag.strip()
    if not text:
        raise ValueError("flag name must not be empty")
    key = text[1:] if text.startswith("\\") else text
    member = SystemFlag.__members__.get(key.upper())
    if member is not None:
        return member
    return text


@dataclass(frozen=True)
class FlagSet:
    """Immutable snapshot of a message's flags."""

    system: FrozenSet[SystemFlag] = frozenset()
    user: FrozenSet[str] = frozenset()

    @classmethod
    def from_imap(cls, raw: Iterable[Union[bytes, str]]) -> "FlagSet":
        """Build a flag set from an IMAP ``FLAGS`` response tuple.

        What:
          Sorts each atom into :attr:`system` or :attr:`user`.

        Why:
          On the wire only a leading backslash marks a system flag. A keyword
          spelled ``Flagged`` or ``seen`` is a user keyword and must not read
          as ``\\Flagged`` or ``\\Seen``. The lenient :func:`normalize_flag`
          is for caller input only.

        Args:
          raw: Flag atoms as returned by ``FETCH FLAGS``.
        """

        system: Set[SystemFlag] = set()
        user: Set[str] = set()
        for item in raw:
            text = item.decode("utf-8", errors="replace") if isinstance(item, bytes) else item
            text = text.strip()
            if not text:
                continue
            member = None
            if text.startswith("\\"):
                member = SystemFlag.__members__.get(text[1:].upper())
            if member is not None:
                system.add(member)
            else:
                user.add(text)
        return cls(frozenset(system), frozenset(user))

    def contains(self, flag: Union[Flag, bytes]) -> bool:
        """Return ``True`` when ``flag`` is present; keywords compare case-insensitively.

        Args:
          flag: Any spelling accepted by :func:`normalize_flag`.
        """

        canonical = normalize_flag(flag)
        if isinstance(canonical, SystemFlag):
            return canonical in self.system
        folded = canonical.casefold()
        return any(keyword.casefold() == folded for keyword in self.user)

    __contains__ = contains

    def with_flag(self, flag: Union[Flag, bytes], value: bool) -> "FlagSet":
        """Return a copy with ``flag`` added (``value`` true) or removed."""

        canonical = normalize_flag(flag)
        if isinstance(canonical, SystemFlag):
            system = set(self.system)
            if value:
                system.add(canonical)
            else:
                system.discard(canonical)
            return FlagSet(frozenset(system), self.user)
        folded = canonical.casefold()
        user = {keyword for keyword in self.user if keyword.casefold() != folded}
        if value:
            user.add(canonical)
        return FlagSet(self.system, frozenset(user))


@dataclass(frozen=True)
class FlagTerm:
    """Search predicate matching messages where ``flag`` is present or absent.

    ``FlagTerm(SystemFlag.SEEN, present=False)`` selects unread messages.
    """

    flag: Flag
    present: bool = True
    _canonical: Flag = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_canonical", normalize_flag(self.flag))

    def criteria(self) -> List[str]:
        """Translate the predicate into ``imapclient`` search criteria."""

        flag = self._canonical
        if isinstance(flag, SystemFlag):
            positive, negative = _SEARCH_KEYS[flag]
            return [positive if self.present else negative]
        return ["KEYWORD" if self.present else "UNKEYWORD", flag]

    def matches(self, flags: FlagSet) -> bool:
        return flags.contains(self._canonical) is self.present


def has_flag(message: "MailMessage", flag: Union[Flag, bytes]) -> bool:
    """Return ``True`` when ``message`` currently carries ``flag``."""

    return message.flags.contains(flag)


def user_flags(message: "MailMessage") -> Set[str]:
    """Return the user keywords set on ``message``."""

    return set(message.flags.user)


def is_read(message: "MailMessage") -> bool:
    """Return ``True`` when ``message`` carries ``\\Seen``.

    What:
      Reads the handle's flag snapshot; no server round-trip.

    Args:
      message: Handle whose flags were fetched with it.
    """

    return has_flag(message, SystemFlag.SEEN)


def is_answered(message: "MailMessage") -> bool:
    """Return ``True`` when ``message`` carries ``\\Answered``."""

    return has_flag(message, SystemFlag.ANSWERED)


def is_recent(message: "MailMessage") -> bool:
    """Return ``True`` when the server reported ``\\Recent`` for this session."""

    return has_flag(message, SystemFlag.RECENT)


def set_flag(message: "MailMessage", flag: Union[Flag, bytes], value: bool) -> None:
    """Set or clear ``flag`` on the server for ``message``.

    The owning folder must be open read-write. The handle's flags are replaced
    with what the server reports after the update.

    Raises:
      StateError: If the message has no folder, or the folder is closed or
        read-only.
      ValueError: If ``flag`` is ``\\Recent``.
    """

    canonical = normalize_flag(flag)
    if canonical is SystemFlag.RECENT:
        raise ValueError("\\Recent is managed by the server and cannot be changed")
    folder = message.folder
    if folder is None:
        raise StateError("Message is not attached to a folder; flags cannot be changed")
    folder.store_flag(message, canonical, value)


def mark_all_read(folder: "Folder") -> None:
    """Mark every unread message in ``folder`` as read, one at a time.

    Not atomic. When an update fails, the messages already processed stay
    marked, the rest stay unread, and the error propagates.

    Raises:
      StateError: If ``folder`` is not open read-write.
    """

    folder.require_writable()
    unread = folder.search(FlagTerm(SystemFlag.SEEN, present=False))
    marked = 0
    for message in unread:
        try:
            set_flag(message, SystemFlag.SEEN, True)
        except Exception as exc:
            _LOGGER.warning(
                "mark_all_read_partial",
                folder=folder.full_name,
                marked=marked,
                remaining=len(unread) - marked,
                error=type(exc).__name__,
            )
            raise
        marked += 1
    _LOGGER.info("mark_all_read_done", folder=folder.full_name, marked=marked)

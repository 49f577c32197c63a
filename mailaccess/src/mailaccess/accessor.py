"""Envelope and body extraction with per-field failure isolation.

What:
  Read sender, recipients, subject, dates, content type and body from a
  :class:`~mailaccess.message.MailMessage`, and compose them into a
  :class:`MessageRecord` with :func:`read_message`.

Why:
  Real mail is messy: a missing ``Sender`` header or an unparsable ``Date``
  must not hide the subject and body of an otherwise readable message. Each
  field is therefore extracted on its own and a failure only blanks that
  field. Only when the message itself cannot be read does the caller get an
  :class:`ErrorRecord` instead.

How:
  Each reader is wrapped by :func:`extract`, which turns any exception into a
  :class:`Failed` result carrying an :class:`~mailaccess.errors.ExtractionError`.
  :class:`MessageRecord` keeps the successful values and remembers which
  fields failed, so "absent because it failed" stays distinguishable from
  "absent because the message lacked it".

Interfaces:
  Field readers (:func:`to`, :func:`from_`, :func:`subject`, :func:`sender`,
  :func:`date_sent`, :func:`date_received`, :func:`is_multipart`,
  :func:`content_type`, :func:`body`), header readers (:func:`all_headers`,
  :func:`message_id`, :func:`in_reply_to`, :func:`encoding`, :func:`flags`),
  :class:`MessageRecord`, :class:`ErrorRecord`, :func:`read_message`.

Invariants & Safety:
  - :func:`read_message` never raises for a handle; it returns either a
    nine-field :class:`MessageRecord` or an :class:`ErrorRecord`.
  - ``body`` is a single :class:`~mailaccess.mime.MimeLeaf` for non-multipart
    messages and a list of leaves for multipart ones; callers branch on
    ``multipart``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from . import mime
from .errors import ExtractionError, RecordError
from .flags import FlagSet
from .message import MailMessage
from .utils.logging import get_logger

_LOGGER = get_logger("mailaccess.accessor")

_FOLD = re.compile(r"\r?\n(?=[ \t])")

Body = Union[mime.MimeLeaf, List[mime.MimeLeaf]]


def _addresses(message: MailMessage, header: str) -> List[str]:
    values = message.parsed.get_all(header) or []
    result: List[str] = []
    for value in values:
        result.extend(str(address) for address in value.addresses)
    return result


def to(message: MailMessage) -> List[str]:
    """Return the ``To`` recipients as display strings."""

    return _addresses(message, "To")


def from_(message: MailMessage) -> List[str]:
    """Return the ``From`` addresses as display strings."""

    return _addresses(message, "From")


def subject(message: MailMessage) -> Optional[str]:
    """Return the decoded ``Subject`` header, or ``None`` when absent."""

    value = message.parsed.get("Subject")
    return None if value is None else str(value)


def sender(message: MailMessage) -> str:
    """Return the ``Sender`` address.

    Raises:
      ExtractionError: If the message has no ``Sender`` header.
    """

    addresses = _addresses(message, "Sender")
    if not addresses:
        raise ExtractionError("sender", "no Sender header")
    return addresses[0]


def date_sent(message: MailMessage) -> datetime:
    """Return the ``Date`` header as a :class:`datetime`.

    Raises:
      ExtractionError: If the header is missing or unparsable.
    """

    header = message.parsed.get("Date")
    value = getattr(header, "datetime", None) if header is not None else None
    if value is None:
        raise ExtractionError("date_sent", "no parsable Date header")
    return value


def date_received(message: MailMessage) -> datetime:
    """Return when the message reached the store.

    Uses the server's INTERNALDATE when the handle came from a folder, and the
    date of the newest ``Received`` header otherwise.

    Raises:
      ExtractionError: If neither source yields a date.
    """

    if message.internaldate is not None:
        return message.internaldate
    received = message.parsed.get_all("Received") or []
    if received:
        _, _, stamp = str(received[0]).rpartition(";")
        if stamp.strip():
            try:
                return parsedate_to_datetime(stamp.strip())
            except (TypeError, ValueError) as exc:
                raise ExtractionError("date_received", f"bad Received date: {exc}") from exc
    raise ExtractionError("date_received", "no receive date known")


def content_type(message: MailMessage) -> str:
    """Return the raw ``Content-Type`` header (``text/plain`` if absent)."""

    return mime.header_content_type(message.parsed)


def is_multipart(message: MailMessage) -> bool:
    """Return ``True`` when the top-level content type is ``multipart/*``."""

    return content_type(message).startswith("multipart")


def body(message: MailMessage) -> Body:
    """Return the message body as one leaf or as the flattened leaf list."""

    tree = message.tree
    if mime.is_multipart(tree):
        return mime.flatten(tree)
    return mime.to_record(tree)


def all_headers(message: MailMessage) -> Dict[str, str]:
    """Return every header; the last occurrence of a repeated name wins."""

    return {name: str(value) for name, value in message.parsed.items()}


def _single_header(message: MailMessage, name: str) -> Optional[str]:
    """Return the unparsed value of header ``name``.

    What:
      Scans :meth:`email.message.Message.raw_items` so the value is taken as
      transmitted, unfolded and stripped. The last occurrence wins.

    Why:
      The structured ``policy.default`` header classes cut non-conforming
      identifiers at the first space or backslash (``<abc 1@host>`` becomes
      ``<abc``), which would make distinct messages share one fixture name.
    """

    wanted = name.lower()
    value: Optional[str] = None
    for key, raw in message.parsed.raw_items():
        if key.lower() == wanted:
            value = raw
    if value is None:
        return None
    return _FOLD.sub("", str(value)).strip()


def message_id(message: MailMessage) -> Optional[str]:
    """Return the ``Message-ID`` header exactly as sent, or ``None``."""

    return _single_header(message, "Message-ID")


def in_reply_to(message: MailMessage) -> Optional[str]:
    """Return the ``In-Reply-To`` header exactly as sent, or ``None``."""

    return _single_header(message, "In-Reply-To")


def encoding(message: MailMessage) -> Optional[str]:
    """Return the top-level ``Content-Transfer-Encoding`` value, or ``None``."""

    return _single_header(message, "Content-Transfer-Encoding")


def flags(message: MailMessage) -> FlagSet:
    """Return the flag snapshot held by the handle; no server round-trip."""

    return message.flags


@dataclass(frozen=True)
class Extracted:
    value: Any


@dataclass(frozen=True)
class Failed:
    error: ExtractionError


FieldResult = Union[Extracted, Failed]


def extract(name: str, reader: Callable[[MailMessage], Any], message: MailMessage) -> FieldResult:
    """Run ``reader`` on ``message``, capturing any failure as :class:`Failed`."""

    try:
        return Extracted(reader(message))
    except ExtractionError as exc:
        return Failed(exc)
    except Exception as exc:
        error = ExtractionError(name, f"{type(exc).__name__}: {exc}")
        error.__cause__ = exc
        return Failed(error)


def _first(values: List[str]) -> Optional[str]:
    return values[0] if values else None


_FIELDS: Tuple[Tuple[str, Callable[[MailMessage], Any]], ...] = (
    ("to", lambda m: _first(to(m))),
    ("from", lambda m: _first(from_(m))),
    ("subject", subject),
    ("sender", sender),
    ("date_sent", date_sent),
    ("date_received", date_received),
    ("multipart", is_multipart),
    ("content_type", content_type),
    ("body", body),
)

RECORD_FIELDS = tuple(name for name, _ in _FIELDS)


@dataclass
class MessageRecord:
    """Normalised view of one message; any field may be ``None``."""

    to: Optional[str] = None
    from_: Optional[str] = None
    subject: Optional[str] = None
    sender: Optional[str] = None
    date_sent: Optional[datetime] = None
    date_received: Optional[datetime] = None
    multipart: Optional[bool] = None
    content_type: Optional[str] = None
    body: Optional[Body] = None
    failures: Dict[str, ExtractionError] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Dict[str, FieldResult]) -> "MessageRecord":
        values: Dict[str, Any] = {}
        failures: Dict[str, ExtractionError] = {}
        for name, result in results.items():
            if isinstance(result, Failed):
                failures[name] = result.error
            else:
                values["from_" if name == "from" else name] = result.value
        return cls(failures=failures, **values)

    def failed(self, name: str) -> bool:
        return name in self.failures

    def as_dict(self) -> Dict[str, Any]:
        """Return the nine-key mapping with bodies as plain dictionaries."""

        if isinstance(self.body, list):
            body_value: Any = [leaf.as_dict() for leaf in self.body]
        elif isinstance(self.body, mime.MimeLeaf):
            body_value = self.body.as_dict()
        else:
            body_value = self.body
        return {
            "to": self.to,
            "from": self.from_,
            "subject": self.subject,
            "sender": self.sender,
            "date_sent": self.date_sent,
            "date_received": self.date_received,
            "multipart": self.multipart,
            "content_type": self.content_type,
            "body": body_value,
        }


@dataclass
class ErrorRecord:
    """Returned by :func:`read_message` when the message itself is unreadable."""

    error: RecordError

    def as_dict(self) -> Dict[str, Any]:
        return {"error": self.error}


def read_message(message: MailMessage) -> Union[MessageRecord, ErrorRecord]:
    """Normalise ``message`` into a :class:`MessageRecord`.

    Each field is extracted independently; a failing field is left as
    ``None`` and noted in :attr:`MessageRecord.failures`. If the message
    content cannot be obtained or parsed at all, an :class:`ErrorRecord` is
    returned instead.
    """

    try:
        message.parsed
        results = {name: extract(name, reader, message) for name, reader in _FIELDS}
        record = MessageRecord.from_results(results)
    except Exception as exc:
        _LOGGER.warning("read_message_failed", uid=message.uid, error=type(exc).__name__)
        return ErrorRecord(RecordError(exc))
    for name, error in record.failures.items():
        _LOGGER.debug("field_extraction_failed", uid=message.uid, field=name, reason=error.reason)
    return record

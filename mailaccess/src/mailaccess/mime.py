"""MIME normalisation: content-type classification and tree flattening.

What:
  Classify content-type headers, build an owned tree of MIME nodes from a
  parsed message, and flatten that tree into an ordered list of leaves.

Why:
  Mail arrives as arbitrarily nested ``multipart/*`` structures. Display code
  wants a flat, ordered list of ``{content_type, body}`` records and must not
  re-read a live connection while walking the structure.

How:
  :func:`build_tree` walks a :class:`email.message.EmailMessage` once and
  copies each part into a :class:`MimeNode`, decoding leaf payloads up front.
  :func:`flatten` then performs a depth-first, left-to-right walk over the
  owned tree. Nested multipart children are always flattened recursively, so
  every leaf appears exactly once in document order.

Interfaces:
  :class:`ContentKind`, :class:`ContentClass`, :class:`MimeNode`,
  :class:`MimeLeaf`, :func:`classify_content_type`, :func:`is_multipart`,
  :func:`build_tree`, :func:`flatten`, :func:`to_record`.

Invariants & Safety:
  - :func:`classify_content_type` is total: unknown or malformed headers map
    to :attr:`ContentKind.UNKNOWN` carrying the original string.
  - :func:`is_multipart` is a case-sensitive prefix test on the raw header,
    independent of how the parser interpreted the part.
  - A node whose header says multipart but which has no parsed children is
    treated as a leaf so its payload is not lost.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from email.message import Message
from typing import Any, Dict, List, NamedTuple, Optional

DEFAULT_CONTENT_TYPE = "text/plain"


class ContentKind(enum.Enum):
    MULTIPART = "multipart"
    HTML = "html"
    PLAIN = "plain"
    UNKNOWN = "unknown"


_KNOWN_TYPES = {
    "multipart/alternative": ContentKind.MULTIPART,
    "text/html": ContentKind.HTML,
    "text/plain": ContentKind.PLAIN,
}


class ContentClass(NamedTuple):
    """Result of :func:`classify_content_type`; ``raw`` is the input header."""

    kind: ContentKind
    raw: str


def classify_content_type(raw_header: str) -> ContentClass:
    """Classify a ``Content-Type`` header value.

    Only the media type before the first ``;`` is considered, trimmed and
    lower-cased, and matched exactly against ``multipart/alternative``,
    ``text/html`` and ``text/plain``. Parameters such as ``charset`` are
    ignored.
    """

    media_type = raw_header.split(";", 1)[0].strip().lower()
    return ContentClass(_KNOWN_TYPES.get(media_type, ContentKind.UNKNOWN), raw_header)


@dataclass
class MimeNode:
    """One part of a message body.

    Leaves have ``children`` set to ``None`` and carry their decoded payload
    in ``content`` (``str`` for text, ``bytes`` for binary parts, a nested
    message for ``message/rfc822``). Containers hold their parts, in order, in
    ``children`` and mirror them in ``content``.
    """

    content_type: str
    content: Any = None
    children: Optional[List["MimeNode"]] = None


@dataclass(frozen=True)
class MimeLeaf:
    """Normalised ``{content_type, body}`` record for one body part."""

    content_type: str
    body: Any

    def as_dict(self) -> Dict[str, Any]:
        return {"content_type": self.content_type, "body": self.body}


def is_multipart(node: Any) -> bool:
    """Return ``True`` when ``node.content_type`` starts with ``"multipart"``."""

    return node.content_type.startswith("multipart")


def header_content_type(part: Message) -> str:
    """Return the raw ``Content-Type`` value of ``part`` or its default."""

    raw = part.get("Content-Type")
    if raw is None:
        return part.get_default_type() or DEFAULT_CONTENT_TYPE
    return str(raw)


def build_tree(part: Message) -> MimeNode:
    """Copy ``part`` and its descendants into an owned :class:`MimeNode` tree."""

    content_type = header_content_type(part)
    if part.get_content_maintype() == "multipart" and part.is_multipart():
        children = [build_tree(child) for child in part.get_payload()]
        return MimeNode(content_type=content_type, content=list(children), children=children)
    return MimeNode(content_type=content_type, content=_leaf_content(part))


def _leaf_content(part: Message) -> Any:
    try:
        return part.get_content()
    except (LookupError, AttributeError):
        # Unknown charset or a part type without a content handler.
        payload = part.get_payload(decode=True)
        return payload if payload is not None else b""


def to_record(node: MimeNode) -> MimeLeaf:
    """Wrap ``node`` as a :class:`MimeLeaf` without descending into it."""

    return MimeLeaf(content_type=node.content_type, body=node.content)


def flatten(node: MimeNode) -> List[MimeLeaf]:
    """Return the leaves under ``node`` in depth-first, left-to-right order.

    A non-multipart node yields a single leaf built from the node itself.
    """

    if not is_multipart(node) or node.children is None:
        return [to_record(node)]
    leaves: List[MimeLeaf] = []
    for child in node.children:
        if is_multipart(child) and child.children is not None:
            leaves.extend(flatten(child))
        else:
            leaves.append(to_record(child))
    return leaves

"""Save messages to disk and read them back as message handles.

What:
  Write each message's raw bytes to a file named after its ``Message-ID`` and
  parse such files back into :class:`~mailaccess.message.MailMessage` handles.

Why:
  Saved messages double as test fixtures: a file written here re-parses into a
  handle that :func:`mailaccess.accessor.read_message` treats exactly like a
  live one.

How:
  One file per message, containing :attr:`MailMessage.raw` unchanged. The file
  name is the ``Message-ID`` header value including its angle brackets, e.g.
  ``<abc123@host>``.

Interfaces:
  :func:`message_filename`, :func:`write_message_to_dir`,
  :func:`save_messages_to_dir`, :func:`read_message_from_file`.

Invariants & Safety:
  - A message without a ``Message-ID``, or whose identifier would escape the
    target directory, is rejected with :class:`ValueError`.
  - An existing file is never overwritten; a second message with the same
    ``Message-ID`` raises :class:`FileExistsError`.
  - :func:`save_messages_to_dir` writes sequentially; on failure the files
    already written stay on disk.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Union

from .accessor import message_id
from .message import MailMessage
from .utils.logging import get_logger

_LOGGER = get_logger("mailaccess.fixtures")

PathLike = Union[str, Path]


def message_filename(message: MailMessage) -> str:
    """Return the file name used for ``message``.

    Raises:
      ValueError: If the message has no usable ``Message-ID``.
    """

    identifier = (message_id(message) or "").strip()
    if not identifier:
        raise ValueError("Message has no Message-ID header")
    if "/" in identifier or "\\" in identifier or "\x00" in identifier or identifier in {".", ".."}:
        raise ValueError(f"Message-ID cannot be used as a file name: {identifier!r}")
    return identifier


def write_message_to_dir(directory: PathLike, message: MailMessage) -> Path:
    """Write ``message`` into ``directory`` and return the file path.

    Raises:
      FileExistsError: If a file with the same Message-ID is already there;
        existing fixtures are never overwritten.
      ValueError: If the message has no usable ``Message-ID``.
    """

    target = Path(directory) / message_filename(message)
    with target.open("xb") as stream:
        message.write_to(stream)
    return target


def save_messages_to_dir(directory: PathLike, messages: Iterable[MailMessage]) -> List[Path]:
    """Write each message in turn; returns the paths written.

    Not atomic. When a write fails, the files already written stay on disk, the
    partial count is logged, and the error propagates.
    """

    written: List[Path] = []
    for message in messages:
        try:
            written.append(write_message_to_dir(directory, message))
        except Exception as exc:
            _LOGGER.warning(
                "save_messages_partial",
                directory=str(directory),
                written=len(written),
                uid=message.uid,
                error=type(exc).__name__,
            )
            raise
    return written


def read_message_from_file(path: PathLike) -> MailMessage:
    """Parse a saved message file into a detached handle."""

    source = Path(path)
    return MailMessage.from_bytes(source.read_bytes(), path=source)

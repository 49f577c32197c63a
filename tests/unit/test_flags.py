"""
Module: tests/unit/test_flags.py

What:
    Validate flag normalisation, predicates, server-side flag updates, and the
    best-effort semantics of ``mark_all_read``.

Why:
    Flag changes are real server round-trips: read-only folders must refuse
    them, and a failed batch must leave a predictable prefix updated.

Interfaces:
    test_normalize_*, test_flagset_*, test_set_flag_*, test_mark_all_read_*
"""

import pytest
from imapclient.exceptions import IMAPClientError

from fakes import build_message
from mailaccess.errors import StateError
from mailaccess.flags import (
    FlagSet,
    FlagTerm,
    SystemFlag,
    has_flag,
    is_answered,
    is_read,
    is_recent,
    mark_all_read,
    normalize_flag,
    set_flag,
    user_flags,
)
from mailaccess.imap.folder import FolderMode
from mailaccess.message import MailMessage


@pytest.mark.parametrize("spelling", ["SEEN", "seen", "\\Seen", b"\\Seen", " \\SEEN ", SystemFlag.SEEN])
def test_normalize_system_flag_spellings(spelling):
    assert normalize_flag(spelling) is SystemFlag.SEEN


def test_normalize_user_keyword_keeps_case():
    assert normalize_flag("$Important") == "$Important"
    assert normalize_flag(b"\\Junk") == "\\Junk"


def test_normalize_rejects_empty():
    with pytest.raises(ValueError):
        normalize_flag("  ")


def test_flagset_from_imap_splits_system_and_user():
    flags = FlagSet.from_imap((b"\\Seen", b"\\Flagged", b"$Important", "work"))
    assert flags.system == frozenset({SystemFlag.SEEN, SystemFlag.FLAGGED})
    assert flags.user == frozenset({"$Important", "work"})
    assert "\\seen" in flags
    assert flags.contains("$important")
    assert not flags.contains("ANSWERED")


def test_flagset_from_imap_keeps_bare_keywords_as_user_flags():
    flags = FlagSet.from_imap((b"Flagged", b"Deleted", b"seen", b"\\Custom"))
    assert flags.system == frozenset()
    assert flags.user == frozenset({"Flagged", "Deleted", "seen", "\\Custom"})
    message = MailMessage(flags=flags, _raw=build_message())
    assert not has_flag(message, SystemFlag.DELETED)
    assert not is_read(message)


def test_flagset_with_flag_is_immutable_update():
    flags = FlagSet.from_imap((b"\\Seen",))
    updated = flags.with_flag("ANSWERED", True).with_flag(SystemFlag.SEEN, False).with_flag("Todo", True)
    assert flags.system == frozenset({SystemFlag.SEEN})
    assert updated.system == frozenset({SystemFlag.ANSWERED})
    assert updated.user == frozenset({"Todo"})
    assert updated.with_flag("todo", False).user == frozenset()


def test_predicates_on_detached_message():
    message = MailMessage(flags=FlagSet.from_imap((b"\\Seen", b"\\Recent", b"project-x")), _raw=build_message())
    assert is_read(message)
    assert is_recent(message)
    assert not is_answered(message)
    assert has_flag(message, "PROJECT-X")
    assert user_flags(message) == {"project-x"}


@pytest.mark.parametrize(
    "term, criteria",
    [
        (FlagTerm(SystemFlag.SEEN, present=False), ["UNSEEN"]),
        (FlagTerm("answered"), ["ANSWERED"]),
        (FlagTerm("\\Deleted", present=False), ["UNDELETED"]),
        (FlagTerm(SystemFlag.RECENT, present=False), ["OLD"]),
        (FlagTerm("$Important"), ["KEYWORD", "$Important"]),
        (FlagTerm("$Important", present=False), ["UNKEYWORD", "$Important"]),
    ],
)
def test_flag_term_criteria(term, criteria):
    assert term.criteria() == criteria


def test_flag_term_matches():
    flags = FlagSet.from_imap((b"\\Seen",))
    assert FlagTerm("SEEN").matches(flags)
    assert FlagTerm("SEEN", present=False).matches(FlagSet())


def test_set_flag_round_trips_through_the_server(store, backend):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    message = folder.get_message_by_uid(2)
    assert not is_read(message)
    set_flag(message, "SEEN", True)
    assert is_read(message)
    assert b"\\Seen" in backend.flags_of("INBOX", 2)
    assert is_read(folder.get_message_by_uid(2))
    set_flag(message, "SEEN", False)
    assert not is_read(message)
    assert b"\\Seen" not in backend.flags_of("INBOX", 2)


def test_set_flag_user_keyword(store, backend):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    message = folder.get_message_by_uid(1)
    set_flag(message, "Invoices", True)
    assert user_flags(message) == {"Invoices"}
    assert b"Invoices" in backend.flags_of("INBOX", 1)


def test_set_flag_refreshes_from_get_flags_when_server_is_silent(store, backend, monkeypatch):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    message = folder.get_message_by_uid(2)
    original = backend.add_flags
    monkeypatch.setattr(backend, "add_flags", lambda uids, flags: original(uids, flags, silent=True))
    set_flag(message, SystemFlag.FLAGGED, True)
    assert has_flag(message, "FLAGGED")


def test_set_flag_on_read_only_folder_fails_and_leaves_flag(store, backend):
    folder = store.get_folder("inbox").open(FolderMode.READ_ONLY)
    message = folder.get_message_by_uid(2)
    with pytest.raises(StateError):
        set_flag(message, "SEEN", True)
    assert not is_read(message)
    assert b"\\Seen" not in backend.flags_of("INBOX", 2)
    assert not any(name == "add_flags" for name, _ in backend.calls)


def test_set_flag_on_closed_folder_fails(store):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    message = folder.get_message_by_uid(2)
    folder.close()
    with pytest.raises(StateError):
        set_flag(message, "SEEN", True)


def test_set_flag_on_detached_message_fails():
    with pytest.raises(StateError):
        set_flag(MailMessage(_raw=build_message()), "SEEN", True)


def test_set_flag_refuses_recent(store):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    with pytest.raises(ValueError):
        set_flag(folder.get_message_by_uid(1), "\\Recent", False)


def test_mark_all_read_marks_every_unread_message(store, backend):
    folder = store.get_folder("inbox").open(FolderMode.READ_WRITE)
    mark_all_read(folder)
    assert all(b"\\Seen" in backend.flags_of("INBOX", uid) for uid in (1, 2, 3))
    assert folder.unread_message_count() == 0


def test_mark_all_read_requires_read_write(store):
    folder = store.get_folder("inbox").open(FolderMode.READ_ONLY)
    with pytest.raises(StateError):
        mark_all_read(folder)


@pytest.mark.parametrize("succeed", [0, 1, 2])
def test_mark_all_read_partial_failure_leaves_prefix_marked(store, backend, succeed):
    for index in range(3):
        backend.add_message("Archive", build_message(subject=f"unread {index}", message_id=f"<u{index}@example.com>"))
    folder = store.get_folder("archive").open(FolderMode.READ_WRITE)
    unread_uids = sorted(message.uid for message in folder.unread_messages())
    assert len(unread_uids) == 3
    backend.fail_flag_updates_after = succeed
    with pytest.raises(IMAPClientError):
        mark_all_read(folder)
    marked = [uid for uid in unread_uids if b"\\Seen" in backend.flags_of("Archive", uid)]
    assert marked == unread_uids[:succeed]
    assert folder.unread_message_count() == 3 - succeed

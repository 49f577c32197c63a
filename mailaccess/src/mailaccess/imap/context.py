"""Ambient "current store" binding for nested calls.

What:
  Let a caller declare the store for a lexical block so helpers called inside
  it may omit their ``store`` argument.

Why:
  Threading a store through every convenience call is noisy in scripts, but a
  process-wide mutable global would leak between threads and tasks. A
  :mod:`contextvars` variable gives each thread and task its own binding.

How:
  :func:`store_scope` sets the variable and resets it with the saved token in a
  ``finally`` block, so the previous binding is restored on normal exit, on
  error, and on early return. Scopes nest strictly.

Interfaces:
  :func:`store_scope`, :func:`current_store`, :func:`resolve_store`.
"""
from __future__ import annotations

import contextlib
from contextvars import ContextVar
from typing import TYPE_CHECKING, Iterator, Optional

from ..errors import StateError

if TYPE_CHECKING:
    from .store import Store

_CURRENT_STORE: ContextVar[Optional["Store"]] = ContextVar("mailaccess_current_store", default=None)


@contextlib.contextmanager
def store_scope(store: "Store") -> Iterator["Store"]:
    """Bind ``store`` as the current store for the duration of the block."""

    token = _CURRENT_STORE.set(store)
    try:
        yield store
    finally:
        _CURRENT_STORE.reset(token)


def current_store() -> "Store":
    """Return the store bound by the innermost :func:`store_scope`.

    Raises:
      StateError: If no scope is active.
    """

    store = _CURRENT_STORE.get()
    if store is None:
        raise StateError("No store given and no store_scope is active")
    return store


def resolve_store(store: Optional["Store"] = None) -> "Store":
    """Return ``store`` when given, otherwise the ambient store."""

    return store if store is not None else current_store()

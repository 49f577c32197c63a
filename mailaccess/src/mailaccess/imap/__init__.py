"""Facade for the IMAP store and folder layer.

What:
  Surface :class:`Store`, :class:`Folder` and the scoped helpers used to bind a
  current store or keep a folder open for a block.

Why:
  Call sites should not depend on which submodule defines what; the store,
  folder, and ambient-context modules can then evolve independently.

Invariants & Safety:
  - A store owns one connection and at most one open folder.
  - Folder operations are UID based and require an open folder.
"""

from .context import current_store, resolve_store, store_scope
from .folder import Folder, FolderMode, FolderNode, FolderType, folder_scope, list_folders_recursive
from .store import Store, gmail_store

__all__ = [
    "Folder",
    "FolderMode",
    "FolderNode",
    "FolderType",
    "Store",
    "current_store",
    "folder_scope",
    "gmail_store",
    "list_folders_recursive",
    "resolve_store",
    "store_scope",
]

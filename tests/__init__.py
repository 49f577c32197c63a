"""Test package marker for the mailaccess suites.

What:
  Marks ``tests`` as a package so the root ``conftest`` is imported under a
  stable module name.

How:
  No symbols are exported. Unit tests live in ``tests/unit`` next to the fake
  IMAP backend they share.
"""

"""Pytest configuration shared by every suite.

What:
  Put the source tree on ``sys.path`` and keep the global log threshold from
  leaking between tests.

Why:
  Tests must import the package from ``mailaccess/src`` even when it is not
  installed, and :func:`mailaccess.config.load_config` changes the default log
  level as a side effect.

How:
  Prepend the source directory at import time and reset the level in an
  autouse fixture.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailaccess" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailaccess.utils.logging import set_default_level


@pytest.fixture(autouse=True)
def log_level():
    """Start every test at the INFO threshold and restore it afterwards."""

    set_default_level("INFO")
    try:
        yield
    finally:
        set_default_level("INFO")

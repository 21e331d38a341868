"""Pytest configuration shared by every mailwire suite.

What:
  Establish project import paths and reset the process-wide configuration
  and deliveries ledger around every test.

Why:
  Tests import the ``mailwire`` package straight from the source tree, so the
  ``mailwire/src`` directory is prepended to ``sys.path``. mailwire keeps its
  backend selection and its ledger in module globals; without explicit resets
  tests would depend on execution order.

How:
  Compute the project root relative to this file, inject the source directory
  when present, and define an autouse fixture that clears the
  ``MAILWIRE_CONFIG_PATH`` environment variable and calls
  :func:`reset_configuration` / :func:`reset_deliveries` before and after each
  test.

Interfaces:
  :func:`clean_state` (pytest fixture).

Invariants & Safety:
  - The path injection runs once at import time and only when the source tree
    is present.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mailwire" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

from mailwire.config import reset_configuration
from mailwire.ledger import reset_deliveries

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture(autouse=True)
def clean_state(monkeypatch: pytest.MonkeyPatch):
    """Start every test from the built-in defaults and an empty ledger.

    Args:
      monkeypatch: Pytest helper used to drop ``MAILWIRE_CONFIG_PATH``.
    """

    monkeypatch.delenv("MAILWIRE_CONFIG_PATH", raising=False)
    reset_configuration()
    reset_deliveries()
    try:
        yield
    finally:
        reset_configuration()
        reset_deliveries()


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR

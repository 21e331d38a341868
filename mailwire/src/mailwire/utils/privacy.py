"""mailwire.utils.privacy

What:
  Strip credentials from backend settings before they are attached to an
  error or written to a log line.

Why:
  Transport failures must carry the settings that were in force so operators
  can diagnose them, but SMTP/POP3/IMAP settings hold passwords and user
  names that must never leave the process in clear text.

How:
  :func:`redact_settings` copies the mapping one level deep and replaces the
  value of every key listed in :data:`SECRET_KEYS` with a sentinel whenever a
  value is present.

Interfaces:
  :data:`SECRET_KEYS`, :func:`redact_settings`.

Invariants & Safety:
  - The input mapping is never mutated.
  - ``None`` credentials stay ``None`` so "not configured" remains visible.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping

from .logging import REDACTED

SECRET_KEYS = frozenset({"password", "user_name", "authentication"})


def redact_settings(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``settings`` with credential values masked.

    Args:
      settings: Backend settings mapping.

    Returns:
      New dictionary safe to embed in messages and logs.
    """

    return {
        key: (REDACTED if key in SECRET_KEYS and value is not None else value)
        for key, value in settings.items()
    }

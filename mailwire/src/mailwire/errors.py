"""Exception taxonomy shared by every mailwire subsystem.

What:
  Declare the error types raised by configuration, transport backends, and the
  mbox envelope parser.

Why:
  Callers need to tell a bad backend selector apart from a transport failure
  or a malformed envelope line without string matching. Each error carries the
  context needed for diagnosis (backend kind, redacted settings, offending
  line) so nothing has to be reconstructed from log output.

How:
  A single :class:`MailwireError` root with one subclass per failure family.
  Settings are redacted by the raiser through
  :func:`mailwire.utils.privacy.redact_settings` before they are attached.

Interfaces:
  :class:`MailwireError`, :class:`UnknownBackendKind`, :class:`NotConfigured`,
  :class:`DeliveryFailed`, :class:`RetrievalFailed`,
  :class:`MalformedEnvelope`, :class:`ConfigLoadError`.

Invariants & Safety:
  - Error messages never include credential values.
  - Errors are raised, never swallowed; chained causes are preserved with
    ``raise ... from``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class MailwireError(Exception):
    """Root of every error raised by mailwire."""


class UnknownBackendKind(MailwireError, LookupError):
    """Raised when a delivery or retriever kind is not registered.

    What:
      Signals a configuration selector that does not map to any backend
      class.

    Why:
      Selecting a backend must fail before any I/O is attempted, with enough
      context to spot the typo.

    How:
      Stores the backend ``family`` (``"delivery"`` or ``"retriever"``), the
      rejected ``kind`` and the kinds that are registered.
    """

    def __init__(self, family: str, kind: Any, known: Optional[list] = None) -> None:
        self.family = family
        self.kind = kind
        self.known = sorted(known or [])
        message = f"unknown {family} method {kind!r}"
        if self.known:
            message += f" (known: {', '.join(self.known)})"
        super().__init__(message)


class NotConfigured(MailwireError):
    """Raised when no backend is selected and built-in defaults are disabled."""

    def __init__(self, family: str) -> None:
        self.family = family
        super().__init__(f"no {family} method configured")


class DeliveryFailed(MailwireError):
    """Transport-level failure while handing a message to a backend.

    What:
      Wraps spawn failures, non-zero exit codes, timeouts, SMTP and filesystem
      errors.

    Why:
      Callers implement their own retry policy; they need the backend kind,
      the (redacted) settings in force and the exit/response status.

    How:
      Attributes are set from keyword arguments; the human-readable message
      combines them. The original exception is attached by the raiser as
      ``__cause__``.
    """

    def __init__(
        self,
        reason: str,
        *,
        kind: str,
        settings: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.kind = kind
        self.settings = dict(settings or {})
        self.status = status
        message = f"{kind} delivery failed: {reason}"
        if status is not None:
            message += f" (status {status})"
        if self.settings:
            message += f" settings={self.settings}"
        super().__init__(message)


class RetrievalFailed(MailwireError):
    """Transport-level failure while fetching messages from a mailbox."""

    def __init__(self, reason: str, *, kind: str, settings: Optional[Dict[str, Any]] = None) -> None:
        self.reason = reason
        self.kind = kind
        self.settings = dict(settings or {})
        message = f"{kind} retrieval failed: {reason}"
        if self.settings:
            message += f" settings={self.settings}"
        super().__init__(message)


class MalformedEnvelope(MailwireError, ValueError):
    """Raised when an mbox separator line does not match the grammar.

    Attributes:
      line: The offending raw input.
      position: Character offset where parsing stopped.
      expected: Short description of the token the parser wanted.
    """

    def __init__(self, line: Any, position: int = 0, expected: str = "") -> None:
        self.line = line
        self.position = position
        self.expected = expected
        detail = f"expected {expected} at offset {position}" if expected else f"at offset {position}"
        super().__init__(f"malformed envelope line {line!r}: {detail}")


class ConfigLoadError(MailwireError):
    """Raised when a mailwire configuration file cannot be read or validated."""

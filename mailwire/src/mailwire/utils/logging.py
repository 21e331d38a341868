"""mailwire logging helpers with deterministic JSON emission and redaction.

What:
  Offer a tiny facade over Python streams so every transport backend can emit
  JSON log lines with consistent fields and automatic removal of credentials
  and message content.

Why:
  Delivery problems are diagnosed by grepping logs. A structured layout keeps
  parsing trivial while preventing accidental leakage of passwords from
  backend settings or of message bodies when debugging a failed dispatch.

How:
  Provide a :class:`JsonLogger` dataclass that accepts a target stream and
  enforces uppercase severity levels. ``extra`` dictionaries are scrubbed via
  a recursive redaction helper before being serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - The emitted payload always includes an ISO8601 timestamp, severity, and
    component name.
  - Sensitive keys (see :data:`SENSITIVE_KEYS`) are replaced with
    ``[redacted]`` even inside nested dictionaries.
  - Streams are flushed after every write.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"

SENSITIVE_KEYS = frozenset({"password", "user_name", "authentication", "subject", "body"})


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON log entries that include timestamps, severity, a
      component tag, and optional supplemental fields.

    How:
      Stores the destination stream and component label, then exposes helper
      methods (:meth:`log`, :meth:`info`, :meth:`warning`, :meth:`error`) that
      merge a canonical payload with redacted extras.
    """

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "mailwire"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit a structured JSON log entry.

        Args:
          level: Human-readable severity (e.g., ``"info"`` or ``"error"``).
          message: Core log message.
          extra: Optional context dictionary that will be redacted recursively.
        """

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an informational message with structured context."""

        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message while enforcing redaction."""

        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error entry suitable for alerting."""

        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with :data:`SENSITIVE_KEYS` masked.

        Nested dictionaries are walked so backend ``settings`` attached as a
        single field are scrubbed too. ``None`` values are kept as-is since
        they leak nothing and show that a credential was not configured.
        """

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS and value is not None:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Construct a :class:`JsonLogger` for the requested component.

    What:
      Returns a ready-to-use :class:`JsonLogger` bound to ``component``.

    Why:
      Call sites should avoid instantiating :class:`JsonLogger` directly so the
      shared invariants (redaction keys, default stream) can evolve centrally.

    Args:
      component: Logical subsystem name to include in log payloads.

    Returns:
      Configured :class:`JsonLogger` instance writing to ``stderr``.
    """

    return JsonLogger(component=component)

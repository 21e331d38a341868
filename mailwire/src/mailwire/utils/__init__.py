"""Expose the public utility surface for mailwire.

What:
  Re-export the logging, identifier, MIME and redaction helpers shared by the
  message model and the transport backends.

Interfaces:
  ``get_logger``, ``JsonLogger``, ``IdentifierGenerator``, ``random_tag``,
  ``make_message_id``, ``parse_message``, ``extract_body_text``, ``to_lf``
  and ``redact_settings``.

Invariants & Safety:
  - Only side-effect-free callables are re-exported so import order stays
    predictable.
"""

from .ids import IdentifierGenerator, make_message_id, random_tag
from .logging import JsonLogger, get_logger
from .mime import extract_body_text, parse_message, to_lf
from .privacy import redact_settings

__all__ = [
    "get_logger",
    "JsonLogger",
    "IdentifierGenerator",
    "random_tag",
    "make_message_id",
    "parse_message",
    "extract_body_text",
    "to_lf",
    "redact_settings",
]

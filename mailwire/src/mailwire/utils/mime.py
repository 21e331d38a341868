"""MIME helpers shared by :class:`~mailwire.message.Message`.

What:
  Parse raw RFC 822 payloads into :class:`email.message.EmailMessage`
  objects, pull a plain-text body out of a MIME tree, and normalise line
  endings for transports that expect bare line feeds.

Why:
  Messages arrive as ``str`` from callers, as ``bytes`` from POP3/IMAP and
  from files on disk; every path must produce the same object model. The
  sendmail interface reads LF-terminated text while SMTP wants CRLF.

How:
  Use the ``email`` package's parsers with :data:`email.policy.default`,
  walk multipart messages depth-first for the first ``text/*`` leaf, and
  rewrite ``CRLF``/lone ``CR`` to ``LF`` on the rendered bytes.

Interfaces:
  :func:`parse_message`, :func:`extract_body_text`, :func:`to_lf`.

Invariants & Safety:
  - Undecodable body bytes are dropped (``errors="ignore"``) rather than
    raising while reading a body.
"""
from __future__ import annotations

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser, Parser
from typing import Union


def parse_message(raw: Union[str, bytes]) -> EmailMessage:
    """Parse ``raw`` into an :class:`EmailMessage` with the default policy.

    Args:
      raw: Complete message as text or bytes.

    Returns:
      The parsed message.
    """

    if isinstance(raw, bytes):
        return BytesParser(policy=policy.default).parsebytes(raw)
    return Parser(policy=policy.default).parsestr(raw)


def extract_body_text(message: EmailMessage) -> str:
    """Select the textual body of ``message``.

    What:
      Returns the first ``text/*`` leaf of a multipart message, or the
      content of a single-part message; ``""`` when there is none.

    How:
      Walks multipart messages depth-first while skipping container parts.
      Byte payloads are decoded with the declared charset (UTF-8 fallback).
    """

    if message.is_multipart():
        for part in message.walk():
            if part.is_multipart():
                continue
            if part.get_content_type().startswith("text/"):
                return _decoded_content(part)
        return ""
    if message.get_payload() in (None, ""):
        return ""
    return _decoded_content(message)


def _decoded_content(part: EmailMessage) -> str:
    payload = part.get_content()
    if isinstance(payload, bytes):
        payload = payload.decode(part.get_content_charset("utf-8"), errors="ignore")
    return payload


def to_lf(data: bytes) -> bytes:
    """Convert ``CRLF`` and lone ``CR`` line endings to ``LF``."""

    return data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")

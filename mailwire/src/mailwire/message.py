"""Email message model handed to delivery backends.

What:
  Provide :class:`Message`, a thin layer over
  :class:`email.message.EmailMessage` exposing the fields transports read
  (``destinations``, ``return_path``, the rendered bytes) and the three ways
  of building a message: from raw RFC 822 text, from a mapping or keyword
  fields, or through a builder callable.

Why:
  Backends need a stable, small surface: recipients for the envelope, the
  bounce address, and the wire bytes. Everything else (header folding,
  encodings, MIME) is delegated to the standard library ``email`` package.

How:
  Field names such as ``to`` or ``return_path`` map to header names; address
  headers are parsed with :func:`email.utils.getaddresses`. Rendering
  (:meth:`Message.encoded`) stamps ``Message-ID`` and ``Date`` when missing,
  drops ``Bcc`` and serialises with the SMTP policy (CRLF);
  :meth:`Message.to_lf` rewrites the line endings for sendmail and files.
  A message may carry its own delivery method, which takes precedence over
  the configuration for that message only.

Interfaces:
  :class:`Message`.

Invariants & Safety:
  - ``destinations`` lists To, then Cc, then Bcc addresses in header order.
  - Rendering never mutates the message except to stamp a missing
    ``Message-ID``/``Date`` once, so repeated renders are identical.
"""
from __future__ import annotations

import copy
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.utils import format_datetime, formatdate, getaddresses
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .utils.ids import make_message_id
from .utils.mime import extract_body_text, parse_message, to_lf

FIELD_HEADERS: Dict[str, str] = {
    "to": "To",
    "cc": "Cc",
    "bcc": "Bcc",
    "from": "From",
    "sender": "Sender",
    "reply_to": "Reply-To",
    "subject": "Subject",
    "return_path": "Return-Path",
    "message_id": "Message-ID",
    "date": "Date",
}
ADDRESS_LIST_FIELDS = frozenset({"to", "cc", "bcc", "from", "reply_to"})


def _field_key(name: str) -> str:
    key = name.strip().lower().replace("-", "_")
    return "from" if key == "from_" else key


class Message:
    """An email message.

    Args:
      source: Raw RFC 822 ``str``/``bytes``, a mapping of field names to
        values, a callable receiving the new message, or another
        :class:`Message` to copy.
      **fields: Field values applied after ``source`` (``from_`` for From).

    Example::

        Message(to="mikel@test.lindsaar.net", from_="bob@test.lindsaar.net",
                subject="This is an email", body="This is the body")
    """

    def __init__(self, source: Any = None, /, **fields: Any) -> None:
        self._message = EmailMessage(policy=policy.default)
        self._delivery_override: Optional[tuple] = None
        if source is None:
            pass
        elif isinstance(source, Message):
            self._message = copy.deepcopy(source._message)
            self._delivery_override = source._delivery_override
        elif isinstance(source, (str, bytes)):
            self._message = parse_message(source)
        elif isinstance(source, Mapping):
            self.update(source)
        elif callable(source):
            source(self)
        else:
            raise TypeError(f"cannot build a Message from {type(source).__name__}")
        if fields:
            self.update(fields)

    # Field access -------------------------------------------------------
    def update(self, fields: Union[Mapping[str, Any], Iterable]) -> "Message":
        """Assign every ``(name, value)`` pair; returns ``self``."""

        items = fields.items() if isinstance(fields, Mapping) else fields
        for name, value in items:
            self.set_field(name, value)
        return self

    def set_field(self, name: str, value: Any) -> None:
        """Assign a field by name (``"to"``, ``"body"``, ``"X-Mailer"``...)."""

        key = _field_key(name)
        if key == "body":
            self.body = value
        elif key == "date" and isinstance(value, datetime):
            self._replace_header("Date", format_datetime(value))
        elif key == "return_path":
            self.return_path = value
        elif key in ADDRESS_LIST_FIELDS:
            self._replace_header(FIELD_HEADERS[key], self._join_addresses(value))
        elif key in FIELD_HEADERS:
            self._replace_header(FIELD_HEADERS[key], value)
        else:
            self._replace_header(name, value)

    @staticmethod
    def _join_addresses(value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return ", ".join(str(item) for item in value)

    def _replace_header(self, name: str, value: Any) -> None:
        del self._message[name]
        if value is not None:
            self._message[name] = str(value)

    def _addresses(self, header: str) -> List[str]:
        values = [str(value) for value in self._message.get_all(header, [])]
        return [address for _, address in getaddresses(values) if address]

    def __getitem__(self, name: str) -> Optional[str]:
        value = self._message.get(name)
        return None if value is None else str(value)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set_field(name, value)

    def __delitem__(self, name: str) -> None:
        del self._message[name]

    def __contains__(self, name: str) -> bool:
        return name in self._message

    @property
    def to(self) -> List[str]:
        return self._addresses("To")

    @to.setter
    def to(self, value: Any) -> None:
        self.set_field("to", value)

    @property
    def cc(self) -> List[str]:
        return self._addresses("Cc")

    @cc.setter
    def cc(self, value: Any) -> None:
        self.set_field("cc", value)

    @property
    def bcc(self) -> List[str]:
        return self._addresses("Bcc")

    @bcc.setter
    def bcc(self, value: Any) -> None:
        self.set_field("bcc", value)

    @property
    def from_(self) -> List[str]:
        return self._addresses("From")

    @from_.setter
    def from_(self, value: Any) -> None:
        self.set_field("from", value)

    @property
    def reply_to(self) -> List[str]:
        return self._addresses("Reply-To")

    @reply_to.setter
    def reply_to(self, value: Any) -> None:
        self.set_field("reply_to", value)

    @property
    def sender(self) -> Optional[str]:
        addresses = self._addresses("Sender")
        return addresses[0] if addresses else None

    @sender.setter
    def sender(self, value: Any) -> None:
        self.set_field("sender", value)

    @property
    def subject(self) -> Optional[str]:
        return self["Subject"]

    @subject.setter
    def subject(self, value: Any) -> None:
        self.set_field("subject", value)

    @property
    def return_path(self) -> Optional[str]:
        """Bounce address from ``Return-Path``, without angle brackets.

        ``None`` when the header is absent or holds the null path ``<>``.
        """

        value = self["Return-Path"]
        if value is None:
            return None
        address = value.strip().strip("<>").strip()
        return address or None

    @return_path.setter
    def return_path(self, value: Optional[str]) -> None:
        if value:
            self._replace_header("Return-Path", f"<{value.strip().strip('<>')}>")
        else:
            self._replace_header("Return-Path", None)

    @property
    def message_id(self) -> Optional[str]:
        return self["Message-ID"]

    @message_id.setter
    def message_id(self, value: Any) -> None:
        self.set_field("message_id", value)

    @property
    def date(self) -> Optional[datetime]:
        header = self._message.get("Date")
        if header is None:
            return None
        return getattr(header, "datetime", None)

    @date.setter
    def date(self, value: Any) -> None:
        self.set_field("date", value)

    @property
    def body(self) -> str:
        return extract_body_text(self._message)

    @body.setter
    def body(self, value: Any) -> None:
        if value is None:
            self._message.clear_content()
        elif isinstance(value, bytes):
            self._message.set_content(value, maintype="application", subtype="octet-stream")
        else:
            self._message.set_content(str(value))

    @property
    def destinations(self) -> List[str]:
        """Every recipient address: To, then Cc, then Bcc."""

        return self.to + self.cc + self.bcc

    @property
    def email_message(self) -> EmailMessage:
        """The underlying :class:`EmailMessage`, for MIME-level work."""

        return self._message

    # Rendering ----------------------------------------------------------
    def ready_to_send(self) -> None:
        """Stamp ``Message-ID`` and ``Date`` when they are missing."""

        if "Message-ID" not in self._message:
            self._message["Message-ID"] = make_message_id()
        if "Date" not in self._message:
            self._message["Date"] = formatdate(localtime=True)

    def encoded(self) -> bytes:
        """Render the message as CRLF-terminated bytes, without ``Bcc``."""

        self.ready_to_send()
        rendered = copy.deepcopy(self._message)
        del rendered["Bcc"]
        return rendered.as_bytes(policy=policy.SMTP)

    def to_lf(self) -> bytes:
        """Render the message with bare ``LF`` line endings."""

        return to_lf(self.encoded())

    def __bytes__(self) -> bytes:
        return self.encoded()

    def __str__(self) -> str:
        return self.to_lf().decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<Message to={self.to!r} subject={self.subject!r}>"

    # Delivery -----------------------------------------------------------
    def set_delivery_method(self, kind: Any, settings: Optional[Mapping[str, Any]] = None) -> "Message":
        """Use ``kind`` for this message only, overriding the configuration.

        Raises:
          UnknownBackendKind: When ``kind`` is not registered.
        """

        # The transport layer parses retrieved mail into Message objects.
        from .network import resolve_delivery_method

        self._delivery_override = (resolve_delivery_method(kind), dict(settings or {}))
        return self

    def clear_delivery_method(self) -> None:
        self._delivery_override = None

    def delivery_method(self, configuration: Any = None) -> Any:
        """Backend this message would be delivered with.

        Args:
          configuration: A :class:`~mailwire.config.Configuration`; defaults
            to the process-wide one.
        """

        from .config.configuration import get_configuration

        config = configuration if configuration is not None else get_configuration()
        if self._delivery_override is not None:
            cls, settings = self._delivery_override
            return cls(settings, ledger=config.ledger)
        return config.delivery_method()

    def deliver(self, configuration: Any = None) -> "Message":
        """Deliver through :meth:`delivery_method`; returns ``self``.

        Raises:
          DeliveryFailed: When the backend fails.
        """

        return self.delivery_method(configuration).deliver(self)


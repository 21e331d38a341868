"""Parse mbox ``From`` separator lines.

What:
  Turn the separator line that precedes every message in an mbox file into
  the envelope sender address and the UTC receipt timestamp, keeping the
  parse tree around for diagnostics.

Why:
  RFC 4155 fixes the line format: ``From``, a space, the RFC 2822
  ``addr-spec`` of the sender, a space, a ``ctime``-style timestamp without
  timezone, end of line. The address part can itself contain structure
  (quoted local parts with spaces, domain literals), so splitting on spaces
  or a single regular expression would accept or reject the wrong lines.

How:
  :class:`EnvelopeParser` is a hand-written recursive-descent parser over
  a cursor: each grammar rule consumes characters and returns an
  :class:`EnvelopeNode` spanning them. Any rule that cannot match raises
  :class:`~mailwire.errors.MalformedEnvelope` carrying the whole input and
  the failing offset; nothing partial is returned. The leading ``From``
  keyword is optional because mbox readers commonly strip it before handing
  the remainder over.

Grammar::

    envelope   = ["From" SP] addr-spec SP timestamp [EOL]
    addr-spec  = local-part "@" domain
    local-part = dot-atom / quoted-string
    domain     = dot-atom / domain-literal
    timestamp  = weekday SP month SP day SP time SP year
    day        = SP DIGIT / 2DIGIT
    time       = 2DIGIT ":" 2DIGIT ":" 2DIGIT
    year       = 4DIGIT

Interfaces:
  :class:`EnvelopeNode`, :class:`EnvelopeParser`, :class:`Envelope`,
  :func:`parse_envelope`.

Invariants & Safety:
  - :attr:`Envelope.sender` is the address exactly as written.
  - :attr:`Envelope.date` is timezone-aware UTC.
  - Calendar-invalid timestamps (``Feb 30``, ``25:00:00``) are malformed.
"""
from __future__ import annotations

import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .errors import MalformedEnvelope

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

ATEXT = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-/=?^_`{|}~")
# Printable ASCII minus backslash and double quote, plus space.
QTEXT = frozenset(chr(code) for code in range(32, 127)) - {"\\", '"'}
DTEXT = frozenset(chr(code) for code in range(33, 127)) - {"[", "]", "\\"}


@dataclass(frozen=True)
class EnvelopeNode:
    """One matched grammar rule: its name, the text it spans and sub-rules."""

    name: str
    text: str
    start: int
    end: int
    children: Tuple["EnvelopeNode", ...] = ()

    def find(self, name: str) -> Optional["EnvelopeNode"]:
        """Depth-first search for the first node called ``name``."""

        if self.name == name:
            return self
        for child in self.children:
            found = child.find(name)
            if found is not None:
                return found
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "text": self.text,
            "start": self.start,
            "end": self.end,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class _Cursor:
    line: str
    pos: int = 0

    def peek(self, size: int = 1) -> str:
        return self.line[self.pos:self.pos + size]

    def at_end(self) -> bool:
        return self.pos >= len(self.line)

    def fail(self, expected: str) -> MalformedEnvelope:
        return MalformedEnvelope(self.line, self.pos, expected)

    def literal(self, text: str, name: str) -> EnvelopeNode:
        if self.peek(len(text)) != text:
            raise self.fail(repr(text))
        start = self.pos
        self.pos += len(text)
        return EnvelopeNode(name, text, start, self.pos)

    def digits(self, count: int, name: str) -> EnvelopeNode:
        chunk = self.peek(count)
        if len(chunk) != count or not all(ch in string.digits for ch in chunk):
            raise self.fail(f"{count} digits")
        start = self.pos
        self.pos += count
        return EnvelopeNode(name, chunk, start, self.pos)

    def choice(self, options: Tuple[str, ...], name: str) -> EnvelopeNode:
        for option in options:
            if self.peek(len(option)) == option:
                return self.literal(option, name)
        raise self.fail(name)


class EnvelopeParser:
    """Recursive-descent parser for mbox separator lines.

    What:
      Exposes :meth:`parse`, returning the root :class:`EnvelopeNode`.

    How:
      One method per grammar rule, each taking the shared cursor. Rules
      either return a node and advance the cursor or raise.
    """

    def parse(self, line: Any) -> EnvelopeNode:
        """Parse ``line`` into a tree rooted at an ``envelope`` node.

        Raises:
          MalformedEnvelope: When ``line`` does not match the grammar.
        """

        if isinstance(line, bytes):
            try:
                line = line.decode("ascii")
            except UnicodeDecodeError as exc:
                raise MalformedEnvelope(line, exc.start, "ASCII text") from exc
        if not isinstance(line, str):
            raise MalformedEnvelope(line, 0, "a string")
        cursor = _Cursor(line)
        children: List[EnvelopeNode] = []
        if cursor.peek(5) == "From ":
            children.append(cursor.literal("From", "keyword"))
            cursor.literal(" ", "space")
        children.append(self._addr_spec(cursor))
        cursor.literal(" ", "space")
        children.append(self._timestamp(cursor))
        eol = self._eol(cursor)
        if eol is not None:
            children.append(eol)
        if not cursor.at_end():
            raise cursor.fail("end of line")
        return EnvelopeNode("envelope", line, 0, len(line), tuple(children))

    # Address ------------------------------------------------------------
    def _addr_spec(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        local = self._local_part(cursor)
        cursor.literal("@", "at")
        domain = self._domain(cursor)
        return EnvelopeNode("address", cursor.line[start:cursor.pos], start, cursor.pos, (local, domain))

    def _local_part(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        if cursor.peek() == '"':
            self._quoted_string(cursor)
        else:
            self._dot_atom(cursor)
        return EnvelopeNode("local_part", cursor.line[start:cursor.pos], start, cursor.pos)

    def _domain(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        if cursor.peek() == "[":
            self._domain_literal(cursor)
        else:
            self._dot_atom(cursor)
        return EnvelopeNode("domain", cursor.line[start:cursor.pos], start, cursor.pos)

    def _atom(self, cursor: _Cursor) -> None:
        start = cursor.pos
        while not cursor.at_end() and cursor.peek() in ATEXT:
            cursor.pos += 1
        if cursor.pos == start:
            raise cursor.fail("atom")

    def _dot_atom(self, cursor: _Cursor) -> None:
        self._atom(cursor)
        while cursor.peek() == ".":
            cursor.pos += 1
            self._atom(cursor)

    def _quoted_string(self, cursor: _Cursor) -> None:
        cursor.literal('"', "dquote")
        while True:
            char = cursor.peek()
            if char == "":
                raise cursor.fail("closing quote")
            if char == '"':
                cursor.pos += 1
                return
            if char == "\\":
                escaped = cursor.peek(2)[1:]
                if not escaped or not (" " <= escaped <= "~"):
                    raise cursor.fail("escaped character")
                cursor.pos += 2
            elif char in QTEXT:
                cursor.pos += 1
            else:
                raise cursor.fail("quoted text")

    def _domain_literal(self, cursor: _Cursor) -> None:
        cursor.literal("[", "lbracket")
        while not cursor.at_end() and cursor.peek() in DTEXT:
            cursor.pos += 1
        cursor.literal("]", "rbracket")

    # Timestamp ----------------------------------------------------------
    def _timestamp(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        weekday = cursor.choice(WEEKDAYS, "weekday")
        cursor.literal(" ", "space")
        month = cursor.choice(MONTHS, "month")
        cursor.literal(" ", "space")
        day = self._day(cursor)
        cursor.literal(" ", "space")
        time_node = self._time(cursor)
        cursor.literal(" ", "space")
        year = cursor.digits(4, "year")
        return EnvelopeNode(
            "timestamp",
            cursor.line[start:cursor.pos],
            start,
            cursor.pos,
            (weekday, month, day, time_node, year),
        )

    def _day(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        if cursor.peek() == " ":
            cursor.pos += 1
            digit = cursor.digits(1, "day")
            return EnvelopeNode("day", digit.text, start, cursor.pos)
        return cursor.digits(2, "day")

    def _time(self, cursor: _Cursor) -> EnvelopeNode:
        start = cursor.pos
        hour = cursor.digits(2, "hour")
        cursor.literal(":", "colon")
        minute = cursor.digits(2, "minute")
        cursor.literal(":", "colon")
        second = cursor.digits(2, "second")
        return EnvelopeNode("time", cursor.line[start:cursor.pos], start, cursor.pos, (hour, minute, second))

    def _eol(self, cursor: _Cursor) -> Optional[EnvelopeNode]:
        for terminator in ("\r\n", "\n"):
            if cursor.peek(len(terminator)) == terminator:
                return cursor.literal(terminator, "eol")
        return None


_PARSER = EnvelopeParser()


class Envelope:
    """A parsed mbox separator line.

    What:
      Parses eagerly on construction and exposes the sender, the timestamp
      and the parse tree.

    Args:
      line: The separator line, with or without the leading ``From`` and
        the line terminator.

    Raises:
      MalformedEnvelope: When ``line`` does not match the grammar.
    """

    def __init__(self, line: Any) -> None:
        tree = _PARSER.parse(line)
        self._line = tree.text
        self._tree = tree
        self._sender = tree.find("address").text
        self._date = self._to_datetime(tree)

    @staticmethod
    def _to_datetime(tree: EnvelopeNode) -> datetime:
        stamp = tree.find("timestamp")
        month = MONTHS.index(stamp.find("month").text) + 1
        try:
            return datetime(
                int(stamp.find("year").text),
                month,
                int(stamp.find("day").text),
                int(stamp.find("hour").text),
                int(stamp.find("minute").text),
                int(stamp.find("second").text),
                tzinfo=timezone.utc,
            )
        except ValueError as exc:
            raise MalformedEnvelope(tree.text, stamp.start, "a valid calendar date") from exc

    @property
    def line(self) -> str:
        return self._line

    @property
    def sender(self) -> str:
        """The envelope sender exactly as it appears in the line."""

        return self._sender

    from_ = sender

    @property
    def date(self) -> datetime:
        """The receipt timestamp as an aware UTC :class:`datetime`."""

        return self._date

    @property
    def tree(self) -> EnvelopeNode:
        return self._tree

    def __repr__(self) -> str:
        return f"Envelope(sender={self._sender!r}, date={self._date.isoformat()!r})"


def parse_envelope(line: Any) -> Envelope:
    """Parse ``line``; shorthand for ``Envelope(line)``."""

    return Envelope(line)

"""Fetch messages from a POP3 mailbox with :mod:`poplib`.

What:
  Implement the ``pop3`` retriever method, the built-in default: list the
  mailbox, pick the requested slice, download each message and optionally
  delete it from the server.

Why:
  POP3 remains the lowest common denominator for reading a mailbox; the
  defaults target POP3 over TLS on ``localhost:995``.

How:
  One POP3 session per call. Message numbers from ``LIST`` are ordered
  oldest first, so :meth:`~mailwire.network.base.RetrieverMethod._select`
  can slice them before anything is downloaded. Deletions are flagged with
  ``DELE`` and committed by ``QUIT``.

Interfaces:
  :class:`POP3`.

Invariants & Safety:
  - Protocol and socket errors surface as
    :class:`~mailwire.errors.RetrievalFailed`.
  - The session is always closed, with ``QUIT`` on success so deletions are
    committed, and without it on failure so nothing is deleted. A failed
    login closes the connection before the error surfaces.
"""
from __future__ import annotations

import poplib
from typing import Any, ClassVar, Dict, List

from ...errors import RetrievalFailed
from ...message import Message
from ..base import RetrieverMethod


class POP3(RetrieverMethod):
    """Retriever method reading a POP3 mailbox."""

    KIND: ClassVar[str] = "pop3"
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "address": "localhost",
        "port": 995,
        "user_name": None,
        "password": None,
        "enable_ssl": True,
    }

    def connect(self) -> poplib.POP3:
        settings = self.settings
        kwargs = {}
        if settings.get("timeout") is not None:
            kwargs["timeout"] = settings["timeout"]
        if settings.get("enable_ssl"):
            session = poplib.POP3_SSL(settings["address"], settings["port"], **kwargs)
        else:
            session = poplib.POP3(settings["address"], settings["port"], **kwargs)
        if settings.get("user_name"):
            try:
                session.user(settings["user_name"])
                session.pass_(settings.get("password") or "")
            except (poplib.error_proto, OSError):
                session.close()
                raise
        return session

    def find(
        self,
        *,
        what: str = "first",
        order: str = "asc",
        count: Any = 10,
        delete_after_find: bool = False,
    ) -> Any:
        """Download messages from the mailbox.

        Args:
          what: ``"first"`` (oldest) or ``"last"`` (newest).
          order: ``"asc"`` or ``"desc"`` ordering of the result.
          count: Number of messages or ``"all"``.
          delete_after_find: Flag the returned messages for deletion.

        Returns:
          A :class:`~mailwire.message.Message` when ``count == 1`` (or
          ``None`` for an empty mailbox), otherwise a list.

        Raises:
          RetrievalFailed: On protocol or connection errors.
        """

        try:
            session = self.connect()
        except (poplib.error_proto, OSError) as exc:
            raise RetrievalFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc
        committed = False
        try:
            _, listing, _ = session.list()
            numbers = [int(entry.split()[0]) for entry in listing]
            selected = self._select(numbers, what=what, order=order, count=count)
            single = count == 1
            chosen: List[int] = [] if selected is None else ([selected] if single else selected)
            messages = []
            for number in chosen:
                _, lines, _ = session.retr(number)
                messages.append(Message(b"\r\n".join(lines) + b"\r\n"))
                if delete_after_find:
                    session.dele(number)
            session.quit()
            committed = True
        except (poplib.error_proto, OSError) as exc:
            raise RetrievalFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc
        finally:
            if not committed:
                session.close()
        self.logger.info("messages retrieved", kind=self.KIND, count=len(messages), deleted=delete_after_find)
        if single:
            return messages[0] if messages else None
        return messages

"""Fetch messages from an IMAP mailbox with ``imapclient``.

What:
  Implement the ``imap`` retriever method: select a mailbox, search it, pick
  the requested slice of UIDs and download the full RFC 822 payloads.

Why:
  IMAP keeps mail on the server and allows selecting a folder other than the
  inbox; it is the usual choice for hosted providers.

How:
  Wrap the third-party ``imapclient`` library. UIDs returned by ``SEARCH``
  are sorted ascending (oldest first) and sliced with
  :meth:`~mailwire.network.base.RetrieverMethod._select` before ``FETCH``,
  so only the requested messages cross the wire. Deletions use
  ``delete_messages`` followed by ``expunge``.

Interfaces:
  :class:`IMAP`.

Invariants & Safety:
  - All operations run in UID mode; sequence numbers are never used.
  - The session is logged out even when a command (login included) fails.
  - UIDs missing from the FETCH response are skipped with a warning and
    never deleted.
  - Protocol and socket errors surface as
    :class:`~mailwire.errors.RetrievalFailed`.
"""
from __future__ import annotations

from typing import Any, ClassVar, Dict, List

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from ...errors import RetrievalFailed
from ...message import Message
from ..base import RetrieverMethod


class IMAP(RetrieverMethod):
    """Retriever method reading an IMAP mailbox."""

    KIND: ClassVar[str] = "imap"
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "address": "localhost",
        "port": 993,
        "user_name": None,
        "password": None,
        "enable_ssl": True,
        "mailbox": "INBOX",
    }

    def connect(self) -> IMAPClient:
        settings = self.settings
        kwargs = {}
        if settings.get("timeout") is not None:
            kwargs["timeout"] = settings["timeout"]
        client = IMAPClient(settings["address"], port=settings["port"], ssl=bool(settings.get("enable_ssl")), **kwargs)
        if settings.get("user_name"):
            try:
                client.login(settings["user_name"], settings.get("password") or "")
            except (IMAPClientError, OSError):
                self._logout(client)
                raise
        return client

    def _logout(self, client: IMAPClient) -> None:
        try:
            client.logout()
        except (IMAPClientError, OSError) as exc:
            self.logger.warning("imap logout failed", error=str(exc))

    def find(
        self,
        *,
        what: str = "first",
        order: str = "asc",
        count: Any = 10,
        delete_after_find: bool = False,
        mailbox: Any = None,
        keys: Any = None,
    ) -> Any:
        """Download messages from ``mailbox``.

        Args:
          what: ``"first"`` (oldest) or ``"last"`` (newest).
          order: ``"asc"`` or ``"desc"`` ordering of the result.
          count: Number of messages or ``"all"``.
          delete_after_find: Delete and expunge the returned messages.
          mailbox: Folder to read; defaults to the ``mailbox`` setting.
          keys: IMAP search criteria; defaults to ``["ALL"]``.

        Returns:
          A :class:`~mailwire.message.Message` when ``count == 1`` (or
          ``None`` when nothing matched), otherwise a list.

        Raises:
          RetrievalFailed: On protocol or connection errors.
        """

        folder = mailbox or self.settings["mailbox"]
        single = count == 1
        try:
            client = self.connect()
        except (IMAPClientError, OSError) as exc:
            raise RetrievalFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc
        try:
            client.select_folder(folder, readonly=not delete_after_find)
            uids = sorted(client.search(keys or ["ALL"]))
            selected = self._select(uids, what=what, order=order, count=count)
            chosen: List[int] = [] if selected is None else ([selected] if single else selected)
            messages = []
            if chosen:
                response = client.fetch(chosen, ["RFC822"])
                fetched: List[int] = []
                for uid in chosen:
                    # Expunged by another client between SEARCH and FETCH.
                    payload = (response.get(uid) or {}).get(b"RFC822")
                    if payload is None:
                        self.logger.warning("imap message vanished before fetch", uid=uid, mailbox=folder)
                        continue
                    fetched.append(uid)
                    messages.append(Message(payload))
                if delete_after_find and fetched:
                    client.delete_messages(fetched)
                    client.expunge()
        except (IMAPClientError, OSError) as exc:
            raise RetrievalFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc
        finally:
            self._logout(client)
        self.logger.info("messages retrieved", kind=self.KIND, mailbox=folder, count=len(messages))
        if single:
            return messages[0] if messages else None
        return messages

"""In-memory stand-ins for the transports mailwire drives.

What:
  Provide drop-in replacements for :class:`subprocess.Popen`,
  :class:`smtplib.SMTP`, :class:`poplib.POP3` and
  :class:`imapclient.IMAPClient` that record every call and serve canned
  responses.

Why:
  Unit tests must exercise the delivery and retrieval backends without a
  sendmail binary, an MTA or a mailbox server. Recording the calls lets tests
  assert on the exact argument vector, envelope and protocol sequence.

How:
  Each fake keeps a ``calls`` list of ``(name, args)`` tuples and exposes
  knobs (``returncode``, ``extensions``, ``fail_on``) that tests set before
  the backend runs. Factories returned by :func:`factory` capture the
  constructor arguments and hand back a pre-built instance.

Interfaces:
  :class:`FakePopen`, :class:`FakeSMTP`, :class:`FakePOP3`,
  :class:`FakeIMAPClient`, :func:`factory`.

Invariants & Safety:
  - No fake opens a socket or spawns a process.
"""

from __future__ import annotations

import smtplib
import subprocess
from typing import Any, Dict, List, Optional


def factory(instance: Any, record: Optional[List[Any]] = None):
    """Return a constructor replacement that yields ``instance``.

    Constructor arguments are appended to ``record`` as ``(args, kwargs)``.
    """

    def build(*args: Any, **kwargs: Any) -> Any:
        if record is not None:
            record.append((args, kwargs))
        instance.init_args = (args, kwargs)
        return instance

    return build


class FakePopen:
    """Records the spawned command and the bytes written to stdin."""

    def __init__(self, returncode: int = 0, stderr: bytes = b"", timeout_once: bool = False) -> None:
        self.returncode_on_exit = returncode
        self.stderr = stderr
        self.timeout_once = timeout_once
        self.command: Optional[List[str]] = None
        self.input: Optional[bytes] = None
        self.returncode: Optional[int] = None
        self.killed = False

    def __call__(self, command, **kwargs: Any) -> "FakePopen":
        self.command = list(command)
        self.popen_kwargs = kwargs
        return self

    def communicate(self, input: Optional[bytes] = None, timeout: Optional[float] = None):
        if input is not None:
            self.input = input
        if self.timeout_once:
            self.timeout_once = False
            raise subprocess.TimeoutExpired(self.command, timeout)
        self.returncode = -9 if self.killed else self.returncode_on_exit
        return b"", self.stderr

    def kill(self) -> None:
        self.killed = True


class FakeSMTP:
    """Minimal :class:`smtplib.SMTP` session.

    Attributes:
      extensions: ESMTP extensions advertised to ``has_extn``.
      esmtp_features: Parsed EHLO keywords, as smtplib exposes them.
      fail_on: Name of the method that should raise ``error``.
      sent: ``(from_addr, to_addrs, msg)`` tuples passed to ``sendmail``.
    """

    def __init__(self, extensions=("starttls",)) -> None:
        self.extensions = set(extensions)
        self.esmtp_features = {"auth": "PLAIN LOGIN CRAM-MD5"}
        self.fail_on: Optional[str] = None
        self.error: Exception = smtplib.SMTPRecipientsRefused({})
        self.calls: List[tuple] = []
        self.sent: List[tuple] = []
        self.closed = False

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            raise self.error

    def ehlo_or_helo_if_needed(self) -> None:
        self._record("ehlo_or_helo_if_needed")

    def ehlo(self) -> None:
        self._record("ehlo")

    def has_extn(self, name: str) -> bool:
        return name.lower() in self.extensions

    def starttls(self, context=None) -> None:
        self._record("starttls")

    def login(self, user: str, password: str) -> None:
        self._record("login", user, password)

    def sendmail(self, from_addr: str, to_addrs: List[str], msg: bytes) -> Dict[str, Any]:
        self._record("sendmail", from_addr, to_addrs)
        self.sent.append((from_addr, list(to_addrs), msg))
        return {}


class FakePOP3:
    """POP3 mailbox holding raw messages, numbered from 1 (oldest)."""

    def __init__(self, messages: Optional[List[bytes]] = None) -> None:
        self.messages = list(messages or [])
        self.calls: List[tuple] = []
        self.deleted: List[int] = []
        self.fail_on: Optional[str] = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            import poplib

            raise poplib.error_proto(f"-ERR {name} failed")

    def user(self, name: str) -> bytes:
        self._record("user", name)
        return b"+OK"

    def pass_(self, password: str) -> bytes:
        self._record("pass_", password)
        return b"+OK"

    def list(self):
        self._record("list")
        listing = [f"{index} {len(raw)}".encode() for index, raw in enumerate(self.messages, start=1)]
        return b"+OK", listing, sum(len(entry) for entry in listing)

    def retr(self, number: int):
        self._record("retr", number)
        raw = self.messages[number - 1]
        return b"+OK", raw.replace(b"\r\n", b"\n").split(b"\n"), len(raw)

    def dele(self, number: int) -> bytes:
        self._record("dele", number)
        self.deleted.append(number)
        return b"+OK"

    def quit(self) -> bytes:
        self._record("quit")
        return b"+OK"

    def close(self) -> None:
        self.calls.append(("close", ()))


class FakeIMAPClient:
    """Single-folder IMAP server keyed by UID."""

    def __init__(self, messages: Optional[Dict[int, bytes]] = None, folder: str = "INBOX") -> None:
        self.folders: Dict[str, Dict[int, bytes]] = {folder: dict(messages or {})}
        self.calls: List[tuple] = []
        self.selected: Optional[str] = None
        self.readonly: Optional[bool] = None
        self.deleted: List[int] = []
        self.logged_out = False
        self.fail_on: Optional[str] = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_on == name:
            from imapclient.exceptions import IMAPClientError

            raise IMAPClientError(f"{name} failed")

    def login(self, user: str, password: str) -> None:
        self._record("login", user, password)

    def select_folder(self, folder: str, readonly: bool = False) -> Dict[bytes, Any]:
        self._record("select_folder", folder, readonly)
        self.selected = folder
        self.readonly = readonly
        return {b"EXISTS": len(self.folders.get(folder, {}))}

    def search(self, criteria=None) -> List[int]:
        self._record("search", criteria)
        # Servers do not promise any ordering.
        return sorted(self.folders[self.selected], reverse=True)

    def fetch(self, uids, data) -> Dict[int, Dict[bytes, Any]]:
        self._record("fetch", list(uids), list(data))
        folder = self.folders[self.selected]
        return {uid: {b"RFC822": folder[uid], b"SEQ": index} for index, uid in enumerate(uids, start=1)}

    def delete_messages(self, uids) -> None:
        self._record("delete_messages", list(uids))
        self.deleted.extend(uids)

    def expunge(self) -> None:
        self._record("expunge")
        for uid in self.deleted:
            self.folders[self.selected].pop(uid, None)

    def logout(self) -> None:
        self._record("logout")
        self.logged_out = True

"""Pytest fixtures for unit tests requiring transport fakes.

What:
  Make ``tests/unit`` importable so tests can ``from fakes import ...`` and
  expose fixtures that patch the transport constructors used by the
  sendmail, SMTP, POP3 and IMAP backends.

Why:
  Every backend test needs the same patching; centralising it keeps the
  tests focused on behaviour.

How:
  Each fixture builds a fake from :mod:`fakes`, patches the constructor in
  the backend module with :class:`pytest.MonkeyPatch` and yields the fake.

Interfaces:
  :func:`fake_popen`, :func:`fake_smtp`, :func:`fake_pop3`,
  :func:`fake_imap`, :func:`raw_email`.
"""

import sys
from pathlib import Path

import pytest

from mailwire.network.delivery_methods import sendmail as sendmail_module
from mailwire.network.delivery_methods import smtp as smtp_module
from mailwire.network.retriever_methods import imap as imap_module
from mailwire.network.retriever_methods import pop3 as pop3_module

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeIMAPClient, FakePOP3, FakePopen, FakeSMTP, factory


def make_raw(index: int) -> bytes:
    return (
        f"From: sender{index}@test.lindsaar.net\r\n"
        f"To: mikel@test.lindsaar.net\r\n"
        f"Subject: message {index}\r\n"
        f"\r\n"
        f"body {index}\r\n"
    ).encode()


@pytest.fixture
def raw_email():
    return make_raw


@pytest.fixture
def fake_popen(monkeypatch: pytest.MonkeyPatch) -> FakePopen:
    """Patch ``subprocess.Popen`` as seen by the sendmail backend."""

    fake = FakePopen()
    monkeypatch.setattr(sendmail_module.subprocess, "Popen", fake)
    return fake


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch) -> FakeSMTP:
    """Patch ``smtplib.SMTP``; the fake records its constructor arguments."""

    fake = FakeSMTP()
    monkeypatch.setattr(smtp_module.smtplib, "SMTP", factory(fake))
    return fake


@pytest.fixture
def fake_pop3(monkeypatch: pytest.MonkeyPatch) -> FakePOP3:
    """Patch both ``poplib.POP3`` and ``poplib.POP3_SSL`` with a five-message box."""

    fake = FakePOP3([make_raw(index) for index in range(1, 6)])
    fake.plain_connections = []
    fake.ssl_connections = []
    monkeypatch.setattr(pop3_module.poplib, "POP3", factory(fake, fake.plain_connections))
    monkeypatch.setattr(pop3_module.poplib, "POP3_SSL", factory(fake, fake.ssl_connections))
    return fake


@pytest.fixture
def fake_imap(monkeypatch: pytest.MonkeyPatch) -> FakeIMAPClient:
    """Patch ``IMAPClient`` with a five-message INBOX (UIDs 101..105)."""

    fake = FakeIMAPClient({100 + index: make_raw(index) for index in range(1, 6)})
    monkeypatch.setattr(imap_module, "IMAPClient", factory(fake))
    return fake

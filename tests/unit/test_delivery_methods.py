"""
Module: tests/unit/test_delivery_methods.py

What:
    Validate the built-in delivery backends: sendmail command construction
    and process handling, the SMTP session sequence, file output and the
    in-memory test mailer.

Why:
    Delivery is the one place mailwire talks to the outside world. Wrong
    arguments, a missed exit status or a leaked password in an error message
    are all production incidents.

How:
    Patch the transport constructors with the fakes from ``fakes.py`` (via
    the fixtures in ``conftest.py``), deliver a message and assert on the
    recorded calls, the raised errors and the ledger.

Interfaces:
    test_sendmail_*, test_smtp_*, test_file_*, test_test_mailer_*
"""

import smtplib

import pytest

from mailwire.errors import DeliveryFailed
from mailwire.ledger import DeliveriesLedger
from mailwire.message import Message
from mailwire.network import SMTP, FileDelivery, Sendmail, TestMailer


def make_message(**fields) -> Message:
    values = {
        "to": "mikel@test.lindsaar.net",
        "from_": "ada@test.lindsaar.net",
        "subject": "testing sendmail",
        "body": "testing sendmail",
    }
    values.update(fields)
    return Message(**values)


# Sendmail ---------------------------------------------------------------


def test_sendmail_arguments_with_return_path():
    """
    What:
        The argument string lists the configured arguments, ``-f`` with the
        quoted return path, then the destinations.

    Why:
        The bounce address must reach the MTA, otherwise bounces go to the
        local user running the process.
    """

    message = make_message(return_path="bounces@test.lindsaar.net", cc="carol@test.lindsaar.net")
    backend = Sendmail()
    assert backend.build_arguments(message) == (
        '-i -t -f "bounces@test.lindsaar.net" mikel@test.lindsaar.net carol@test.lindsaar.net'
    )
    assert backend.build_command(message) == [
        "/usr/sbin/sendmail",
        "-i",
        "-t",
        "-f",
        "bounces@test.lindsaar.net",
        "mikel@test.lindsaar.net",
        "carol@test.lindsaar.net",
    ]


def test_sendmail_arguments_without_return_path():
    message = make_message()
    backend = Sendmail({"location": "/usr/lib/sendmail", "arguments": "-i"})
    assert backend.build_arguments(message) == "-i mikel@test.lindsaar.net"
    assert backend.build_command(message) == ["/usr/lib/sendmail", "-i", "mikel@test.lindsaar.net"]


def test_sendmail_pipes_lf_message(fake_popen):
    """
    What:
        Delivery spawns the command and writes the LF-normalised message to
        stdin, then records the message in the ledger.

    How:
        Use the ``fake_popen`` fixture and compare the captured input with
        ``Message.to_lf``.
    """

    ledger = DeliveriesLedger()
    message = make_message(return_path="bounces@test.lindsaar.net")
    returned = Sendmail(ledger=ledger).deliver(message)

    assert returned is message
    assert fake_popen.command[0] == "/usr/sbin/sendmail"
    assert fake_popen.command[-1] == "mikel@test.lindsaar.net"
    assert fake_popen.input == message.to_lf()
    assert b"\r\n" not in fake_popen.input
    assert b"Subject: testing sendmail" in fake_popen.input
    assert ledger.snapshot() == [message]


def test_sendmail_nonzero_exit(fake_popen):
    fake_popen.returncode_on_exit = 75
    fake_popen.stderr = b"queue file write error"
    ledger = DeliveriesLedger()
    with pytest.raises(DeliveryFailed) as excinfo:
        Sendmail(ledger=ledger).deliver(make_message())
    assert excinfo.value.status == 75
    assert excinfo.value.kind == "sendmail"
    assert "queue file write error" in str(excinfo.value)
    assert len(ledger) == 0


def test_sendmail_missing_binary(tmp_path):
    ledger = DeliveriesLedger()
    backend = Sendmail({"location": str(tmp_path / "no-such-sendmail")}, ledger=ledger)
    with pytest.raises(DeliveryFailed) as excinfo:
        backend.deliver(make_message())
    assert excinfo.value.status is None
    assert isinstance(excinfo.value.__cause__, OSError)
    assert not ledger


def test_sendmail_timeout_kills_process(fake_popen):
    fake_popen.timeout_once = True
    backend = Sendmail({"timeout": 1}, ledger=DeliveriesLedger())
    with pytest.raises(DeliveryFailed, match="did not exit within 1 seconds"):
        backend.deliver(make_message())
    assert fake_popen.killed


# SMTP -------------------------------------------------------------------


def test_smtp_session_sequence(fake_smtp):
    """
    What:
        A delivery greets, upgrades with STARTTLS, authenticates and submits
        the message with the envelope derived from the message.

    Why:
        Credentials must only be sent after the TLS upgrade.
    """

    ledger = DeliveriesLedger()
    backend = SMTP({"address": "smtp.example.com", "port": 587, "user_name": "mikel", "password": "secret"}, ledger=ledger)
    message = make_message(bcc="hidden@test.lindsaar.net")
    backend.deliver(message)

    assert fake_smtp.init_args == (("smtp.example.com", 587), {"local_hostname": "localhost.localdomain"})
    names = [name for name, _ in fake_smtp.calls]
    assert names == ["ehlo_or_helo_if_needed", "starttls", "ehlo", "login", "sendmail"]
    sender, recipients, payload = fake_smtp.sent[0]
    assert sender == "ada@test.lindsaar.net"
    assert recipients == ["mikel@test.lindsaar.net", "hidden@test.lindsaar.net"]
    assert b"hidden@test.lindsaar.net" not in payload
    assert b"\r\n" in payload
    assert fake_smtp.closed
    assert ledger.snapshot() == [message]


def test_smtp_without_starttls_or_credentials(fake_smtp):
    fake_smtp.extensions = set()
    SMTP({"timeout": 5}, ledger=DeliveriesLedger()).deliver(make_message(return_path="bounces@test.lindsaar.net"))
    assert [name for name, _ in fake_smtp.calls] == ["ehlo_or_helo_if_needed", "sendmail"]
    assert fake_smtp.init_args[1]["timeout"] == 5
    assert fake_smtp.sent[0][0] == "bounces@test.lindsaar.net"


def test_smtp_authentication_limits_login_mechanism(fake_smtp):
    settings = {"user_name": "mikel", "password": "secret", "authentication": "cram_md5"}
    SMTP(settings, ledger=DeliveriesLedger()).deliver(make_message())
    assert fake_smtp.esmtp_features["auth"] == "CRAM-MD5"
    assert ("login", ("mikel", "secret")) in fake_smtp.calls


def test_smtp_authentication_not_offered(fake_smtp):
    fake_smtp.esmtp_features = {"auth": "PLAIN LOGIN"}
    ledger = DeliveriesLedger()
    settings = {"user_name": "mikel", "password": "secret", "authentication": "cram_md5"}
    with pytest.raises(DeliveryFailed, match="does not offer AUTH CRAM-MD5"):
        SMTP(settings, ledger=ledger).deliver(make_message())
    assert "login" not in [name for name, _ in fake_smtp.calls]
    assert fake_smtp.sent == []
    assert len(ledger) == 0


def test_smtp_response_error_carries_status(fake_smtp):
    fake_smtp.fail_on = "sendmail"
    fake_smtp.error = smtplib.SMTPDataError(554, b"message rejected")
    ledger = DeliveriesLedger()
    backend = SMTP({"user_name": "mikel", "password": "secret"}, ledger=ledger)
    with pytest.raises(DeliveryFailed) as excinfo:
        backend.deliver(make_message())
    assert excinfo.value.status == 554
    assert "message rejected" in str(excinfo.value)
    assert "secret" not in str(excinfo.value)
    assert excinfo.value.settings["password"] == "[redacted]"
    assert len(ledger) == 0


def test_smtp_connection_error(monkeypatch):
    from mailwire.network.delivery_methods import smtp as smtp_module

    def refuse(*args, **kwargs):
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr(smtp_module.smtplib, "SMTP", refuse)
    with pytest.raises(DeliveryFailed, match="Connection refused"):
        SMTP(ledger=DeliveriesLedger()).deliver(make_message())


def test_smtp_requires_sender_and_destinations(fake_smtp):
    backend = SMTP(ledger=DeliveriesLedger())
    with pytest.raises(DeliveryFailed, match="no sender"):
        backend.deliver(Message(to="mikel@test.lindsaar.net"))
    with pytest.raises(DeliveryFailed, match="no destinations"):
        backend.deliver(Message(from_="ada@test.lindsaar.net"))
    assert fake_smtp.sent == []


# File -------------------------------------------------------------------


def test_file_delivery_appends_per_recipient(tmp_path):
    location = tmp_path / "mails"
    backend = FileDelivery({"location": str(location)}, ledger=DeliveriesLedger())
    message = make_message(cc="carol@test.lindsaar.net")
    backend.deliver(message)
    backend.deliver(message)

    for address in ("mikel@test.lindsaar.net", "carol@test.lindsaar.net"):
        content = (location / address).read_bytes()
        assert content == message.to_lf() * 2
    assert len(backend.ledger) == 2


def test_file_delivery_keeps_separators_out(tmp_path):
    backend = FileDelivery({"location": str(tmp_path)})
    assert backend.path_for("../escape@test").parent == tmp_path


def test_file_delivery_error(tmp_path):
    blocker = tmp_path / "not-a-directory"
    blocker.write_text("occupied")
    backend = FileDelivery({"location": str(blocker)}, ledger=DeliveriesLedger())
    with pytest.raises(DeliveryFailed):
        backend.deliver(make_message())


# Test mailer --------------------------------------------------------------


def test_test_mailer_records_in_order():
    ledger = DeliveriesLedger()
    mailer = TestMailer(ledger=ledger)
    first = mailer.deliver(make_message(subject="one"))
    second = mailer.deliver(make_message(subject="two"))
    assert [message.subject for message in ledger] == ["one", "two"]
    assert ledger[0] is first and ledger[-1] is second


def test_backend_repr_hides_credentials():
    backend = SMTP({"user_name": "mikel", "password": "secret"})
    assert "secret" not in repr(backend)
    assert "mikel" not in repr(backend)

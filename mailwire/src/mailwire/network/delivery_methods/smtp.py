"""Deliver messages to an SMTP relay with :mod:`smtplib`.

What:
  Implement the ``smtp`` delivery method, the built-in default: connect to
  ``address:port``, optionally upgrade with STARTTLS and authenticate, then
  submit the message to its destinations.

Why:
  Most deployments relay through a local MTA or a provider's submission
  port; the defaults target an MTA listening on ``localhost:25``.

How:
  A :class:`smtplib.SMTP` session per delivery. STARTTLS is attempted when
  ``enable_starttls_auto`` is set and the server advertises it. The envelope
  sender is the return path, else the ``Sender`` header, else the first
  ``From`` address.

Interfaces:
  :class:`SMTP`.

Invariants & Safety:
  - SMTP and socket errors surface as :class:`~mailwire.errors.DeliveryFailed`
    carrying the SMTP status code when one is available.
  - Credentials are only sent after STARTTLS when the server offers it.
  - An ``authentication`` setting (``plain``, ``login``, ``cram_md5``) limits
    login to that mechanism; a server that does not advertise it fails the
    delivery before any credentials are sent.
"""
from __future__ import annotations

import smtplib
import ssl
from typing import Any, ClassVar, Dict, Optional

from ...errors import DeliveryFailed
from ..base import DeliveryMethod


class SMTP(DeliveryMethod):
    """Delivery method talking to an SMTP server."""

    KIND: ClassVar[str] = "smtp"
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "address": "localhost",
        "port": 25,
        "domain": "localhost.localdomain",
        "user_name": None,
        "password": None,
        "authentication": None,
        "enable_starttls_auto": True,
    }

    def envelope_from(self, message: Any) -> Optional[str]:
        for candidate in (
            getattr(message, "return_path", None),
            getattr(message, "sender", None),
        ):
            if candidate:
                return candidate
        senders = getattr(message, "from_", None) or []
        if isinstance(senders, str):
            return senders
        return senders[0] if senders else None

    def _transmit(self, message: Any) -> None:
        sender = self.envelope_from(message)
        if not sender:
            raise DeliveryFailed("message has no sender address", kind=self.KIND, settings=self.safe_settings())
        if not message.destinations:
            raise DeliveryFailed("message has no destinations", kind=self.KIND, settings=self.safe_settings())

        settings = self.settings
        timeout = settings.get("timeout")
        kwargs = {"local_hostname": settings.get("domain")}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            with smtplib.SMTP(settings["address"], settings["port"], **kwargs) as session:
                session.ehlo_or_helo_if_needed()
                if settings.get("enable_starttls_auto") and session.has_extn("starttls"):
                    session.starttls(context=ssl.create_default_context())
                    session.ehlo()
                if settings.get("user_name"):
                    self._restrict_auth(session)
                    session.login(settings["user_name"], settings.get("password") or "")
                session.sendmail(sender, list(message.destinations), message.encoded())
        except smtplib.SMTPResponseException as exc:
            raise DeliveryFailed(
                exc.smtp_error.decode("utf-8", errors="replace") if isinstance(exc.smtp_error, bytes) else str(exc.smtp_error),
                kind=self.KIND,
                settings=self.safe_settings(),
                status=exc.smtp_code,
            ) from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc

    def _restrict_auth(self, session: smtplib.SMTP) -> None:
        mechanism = self.settings.get("authentication")
        if not mechanism:
            return
        mechanism = str(mechanism).upper().replace("_", "-")
        advertised = session.esmtp_features.get("auth", "").upper().split()
        if mechanism not in advertised:
            raise DeliveryFailed(
                f"server does not offer AUTH {mechanism}",
                kind=self.KIND,
                settings=self.safe_settings(),
            )
        # smtplib.SMTP.login only tries mechanisms listed here.
        session.esmtp_features["auth"] = mechanism

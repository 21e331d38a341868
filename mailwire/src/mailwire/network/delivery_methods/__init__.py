"""Built-in delivery methods: ``smtp``, ``sendmail``, ``file`` and ``test``."""

from .file import FileDelivery
from .sendmail import Sendmail
from .smtp import SMTP
from .test_mailer import TestMailer

__all__ = ["FileDelivery", "Sendmail", "SMTP", "TestMailer"]

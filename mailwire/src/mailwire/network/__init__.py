"""Facade for the transport layer.

What:
  Surface the capability interfaces, the backend registry and the built-in
  backends, and register those backends under their kind names.

Why:
  Configuration resolves backends by name; importing this package is enough
  for every built-in kind to be selectable.

How:
  Imports the concrete backend packages and registers each class under its
  ``KIND``.

Interfaces:
  ``DeliveryMethod``, ``RetrieverMethod``, ``merge_settings``, the registry
  helpers and the built-in backend classes.

Invariants & Safety:
  - Built-in kinds: delivery ``smtp``, ``sendmail``, ``file``, ``test``;
    retriever ``pop3``, ``imap``, ``test``.
"""

from .base import DeliveryMethod, RetrieverMethod, merge_settings
from .delivery_methods import SMTP, FileDelivery, Sendmail, TestMailer
from .registry import (
    delivery_kinds,
    register_delivery_method,
    register_retriever_method,
    resolve_delivery_method,
    resolve_retriever_method,
    retriever_kinds,
)
from .retriever_methods import IMAP, POP3, TestRetriever

for _cls in (SMTP, Sendmail, FileDelivery, TestMailer):
    register_delivery_method(_cls.KIND, _cls)
for _cls in (POP3, IMAP, TestRetriever):
    register_retriever_method(_cls.KIND, _cls)
del _cls

__all__ = [
    "DeliveryMethod",
    "RetrieverMethod",
    "merge_settings",
    "register_delivery_method",
    "register_retriever_method",
    "resolve_delivery_method",
    "resolve_retriever_method",
    "delivery_kinds",
    "retriever_kinds",
    "SMTP",
    "Sendmail",
    "FileDelivery",
    "TestMailer",
    "POP3",
    "IMAP",
    "TestRetriever",
]

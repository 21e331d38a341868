"""
Module: mailwire.__init__

What:
  Public entry point of mailwire, a library to build RFC 822 messages,
  deliver them through pluggable transports (SMTP, sendmail, files, an
  in-memory test mailer), read them back (POP3, IMAP, in-memory) and parse
  mbox envelope lines.

Why:
  Applications should only need ``import mailwire``: the convenience
  functions cover the common path while the subpackages stay available for
  callers who need explicit configuration objects or custom backends.

How:
  Re-export the facade functions from :mod:`mailwire.mail` and the core
  types, and declare ``__all__`` explicitly so helper modules are not
  re-exported by accident.

Interfaces:
  - Facade: ``new``, ``defaults``, ``deliver``, ``delivery_method``,
    ``retriever_method``, ``find``, ``first``, ``last``, ``all``, ``read``,
    ``deliveries``, ``random_tag``.
  - Types: ``Message``, ``Envelope``, ``Configuration``,
    ``DeliveryMethod``, ``RetrieverMethod`` and the error classes.
  - Subpackages: ``config``, ``network``, ``utils``.

Invariants:
  - Importing the package registers every built-in backend kind.
"""

from . import config, network, utils
from .config import Configuration, get_configuration, load_configuration, reset_configuration
from .envelope import Envelope, EnvelopeParser, parse_envelope
from .errors import (
    ConfigLoadError,
    DeliveryFailed,
    MailwireError,
    MalformedEnvelope,
    NotConfigured,
    RetrievalFailed,
    UnknownBackendKind,
)
from .ledger import DeliveriesLedger, reset_deliveries
from .mail import (
    all,
    defaults,
    deliver,
    deliveries,
    delivery_method,
    find,
    first,
    last,
    new,
    random_tag,
    read,
    retriever_method,
)
from .message import Message
from .network import DeliveryMethod, RetrieverMethod, register_delivery_method, register_retriever_method

__version__ = "0.1.0"

__all__ = [
    "config",
    "network",
    "utils",
    "new",
    "defaults",
    "deliver",
    "delivery_method",
    "retriever_method",
    "find",
    "first",
    "last",
    "all",
    "read",
    "deliveries",
    "random_tag",
    "Message",
    "Envelope",
    "EnvelopeParser",
    "parse_envelope",
    "Configuration",
    "get_configuration",
    "reset_configuration",
    "load_configuration",
    "DeliveriesLedger",
    "reset_deliveries",
    "DeliveryMethod",
    "RetrieverMethod",
    "register_delivery_method",
    "register_retriever_method",
    "MailwireError",
    "UnknownBackendKind",
    "NotConfigured",
    "DeliveryFailed",
    "RetrievalFailed",
    "MalformedEnvelope",
    "ConfigLoadError",
]

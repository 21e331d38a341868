"""Top-level convenience functions re-exported by :mod:`mailwire`.

What:
  Compose the message model, the backend configuration and the deliveries
  ledger into the short calls most applications need: build a message,
  declare defaults, deliver, fetch, read a file, inspect what was sent.

Why:
  The common case should be a single call::

      mailwire.deliver(to="mikel@test.lindsaar.net", from_="ada@test.lindsaar.net",
                       subject="testing sendmail", body="testing sendmail")

  while applications that need isolation can still pass their own
  :class:`~mailwire.config.Configuration` to every call.

How:
  Each function resolves the configuration (explicit argument or the
  process-wide instance), asks it for a backend and forwards the call. The
  retrieval functions pass their criteria through unchanged.

Interfaces:
  :func:`new`, :func:`defaults`, :func:`delivery_method`,
  :func:`retriever_method`, :func:`deliver`, :func:`find`, :func:`first`,
  :func:`last`, :func:`all`, :func:`read`, :func:`deliveries`,
  :func:`random_tag`.

Invariants & Safety:
  - A message-level delivery method wins over the configuration for that
    message.
  - Errors from backends propagate unchanged; nothing is retried.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Union

from .config.configuration import Configuration, get_configuration
from .ledger import DeliveriesLedger, get_deliveries
from .message import Message
from .network import DeliveryMethod, RetrieverMethod
from .utils.ids import random_tag as _random_tag


def _configuration(configuration: Optional[Configuration]) -> Configuration:
    return configuration if configuration is not None else get_configuration()


def new(*args: Any, **fields: Any) -> Message:
    """Build a :class:`~mailwire.message.Message`.

    Accepts raw RFC 822 text, a mapping, a builder callable, or keyword
    fields (``from_`` for the From header)::

        mailwire.new("To: mikel@test.lindsaar.net\\r\\n\\r\\nThis is the body")
        mailwire.new({"to": "mikel@test.lindsaar.net", "subject": "hi"})
        mailwire.new(lambda m: m.update(to="mikel@test.lindsaar.net", body="hi"))
    """

    if len(args) > 1:
        raise TypeError(f"new() takes at most one positional argument ({len(args)} given)")
    return Message(*args, **fields)


def defaults(
    block: Optional[Callable[[Configuration], Any]] = None,
    *,
    configuration: Optional[Configuration] = None,
) -> Any:
    """Declare the default delivery and retriever methods.

    What:
      Runs ``block`` against the configuration so it can call
      ``set_delivery_method`` / ``set_retriever_method``.

    How:
      Usable directly or as a decorator::

          @mailwire.defaults
          def _(config):
              config.set_delivery_method("sendmail")

      or, to target a specific configuration,
      ``@mailwire.defaults(configuration=config)``.

    Returns:
      The configuration when given a block; with no block, a decorator that
      declares the function and returns it unchanged.
    """

    if block is None:
        def decorator(func: Callable[[Configuration], Any]) -> Callable[[Configuration], Any]:
            _configuration(configuration).declare(func)
            return func

        return decorator
    return _configuration(configuration).declare(block)


def delivery_method(configuration: Optional[Configuration] = None) -> DeliveryMethod:
    """Backend instance for the configured delivery method (SMTP by default)."""

    return _configuration(configuration).delivery_method()


def retriever_method(configuration: Optional[Configuration] = None) -> RetrieverMethod:
    """Backend instance for the configured retriever method (POP3 by default)."""

    return _configuration(configuration).retriever_method()


def deliver(*args: Any, configuration: Optional[Configuration] = None, **fields: Any) -> Message:
    """Build a message like :func:`new` and deliver it.

    A :class:`~mailwire.message.Message` passed as the only argument is
    delivered as-is.

    Returns:
      The delivered message.

    Raises:
      UnknownBackendKind, NotConfigured, DeliveryFailed: From the selected
        backend.
    """

    if len(args) == 1 and isinstance(args[0], Message) and not fields:
        message = args[0]
    else:
        message = new(*args, **fields)
    return message.deliver(_configuration(configuration))


def find(*, configuration: Optional[Configuration] = None, **criteria: Any) -> Any:
    """Fetch messages with the configured retriever; see ``RetrieverMethod.find``."""

    return retriever_method(configuration).find(**criteria)


def first(*, configuration: Optional[Configuration] = None, **criteria: Any) -> Any:
    """Oldest message(s) from the configured retriever."""

    return retriever_method(configuration).first(**criteria)


def last(*, configuration: Optional[Configuration] = None, **criteria: Any) -> Any:
    """Newest message(s) from the configured retriever."""

    return retriever_method(configuration).last(**criteria)


def all(*, configuration: Optional[Configuration] = None, **criteria: Any) -> Any:  # noqa: A001
    """Every message from the configured retriever."""

    return retriever_method(configuration).all(**criteria)


def read(path: Union[str, Path]) -> Message:
    """Build a message from the RFC 822 file at ``path``."""

    return Message(Path(path).read_bytes())


def deliveries() -> DeliveriesLedger:
    """The process-wide ledger of delivered messages."""

    return get_deliveries()


def random_tag() -> str:
    """A collision-resistant tag, as used in generated Message-IDs."""

    return _random_tag()

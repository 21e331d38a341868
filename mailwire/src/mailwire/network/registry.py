"""Map backend kinds to the classes implementing them.

What:
  Keep two registries (delivery and retriever) from lower-case kind names
  such as ``"sendmail"`` or ``"imap"`` to backend classes, and resolve a
  caller-supplied selector (name or class) to a class.

Why:
  Configuration refers to backends by name so it can be declared in YAML or
  code without importing transport modules. Third-party transports register
  themselves under new names without touching mailwire.

How:
  Plain dictionaries guarded by a lock. :func:`resolve_delivery_method` and
  :func:`resolve_retriever_method` accept either a registered name or a class
  that already implements the matching interface.

Interfaces:
  :func:`register_delivery_method`, :func:`register_retriever_method`,
  :func:`resolve_delivery_method`, :func:`resolve_retriever_method`,
  :func:`delivery_kinds`, :func:`retriever_kinds`.

Invariants & Safety:
  - Unknown selectors raise :class:`~mailwire.errors.UnknownBackendKind`
    listing the registered kinds.
  - Names are matched case-insensitively.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Type

from ..errors import UnknownBackendKind
from .base import DeliveryMethod, RetrieverMethod

_LOCK = threading.Lock()
_DELIVERY: Dict[str, Type[DeliveryMethod]] = {}
_RETRIEVER: Dict[str, Type[RetrieverMethod]] = {}


def _normalise(kind: str) -> str:
    return kind.strip().lower().replace("-", "_")


def register_delivery_method(kind: str, cls: Type[DeliveryMethod]) -> None:
    """Make ``cls`` selectable as delivery method ``kind``."""

    if not (isinstance(cls, type) and issubclass(cls, DeliveryMethod)):
        raise TypeError(f"{cls!r} is not a DeliveryMethod subclass")
    with _LOCK:
        _DELIVERY[_normalise(kind)] = cls


def register_retriever_method(kind: str, cls: Type[RetrieverMethod]) -> None:
    """Make ``cls`` selectable as retriever method ``kind``."""

    if not (isinstance(cls, type) and issubclass(cls, RetrieverMethod)):
        raise TypeError(f"{cls!r} is not a RetrieverMethod subclass")
    with _LOCK:
        _RETRIEVER[_normalise(kind)] = cls


def _resolve(family: str, registry: Dict[str, type], base: type, kind: Any) -> type:
    if isinstance(kind, type) and issubclass(kind, base):
        return kind
    if isinstance(kind, str):
        with _LOCK:
            cls = registry.get(_normalise(kind))
        if cls is not None:
            return cls
    with _LOCK:
        known = list(registry)
    raise UnknownBackendKind(family, kind, known)


def resolve_delivery_method(kind: Any) -> Type[DeliveryMethod]:
    """Return the delivery class selected by ``kind`` (name or class).

    Raises:
      UnknownBackendKind: When ``kind`` is neither registered nor a
        :class:`DeliveryMethod` subclass.
    """

    return _resolve("delivery", _DELIVERY, DeliveryMethod, kind)


def resolve_retriever_method(kind: Any) -> Type[RetrieverMethod]:
    """Return the retriever class selected by ``kind`` (name or class).

    Raises:
      UnknownBackendKind: When ``kind`` is neither registered nor a
        :class:`RetrieverMethod` subclass.
    """

    return _resolve("retriever", _RETRIEVER, RetrieverMethod, kind)


def delivery_kinds() -> List[str]:
    with _LOCK:
        return sorted(_DELIVERY)


def retriever_kinds() -> List[str]:
    with _LOCK:
        return sorted(_RETRIEVER)

"""Capability interfaces shared by every delivery and retriever backend.

What:
  Define :class:`DeliveryMethod` and :class:`RetrieverMethod`, the two
  abstract contracts the facade drives, along with :func:`merge_settings`,
  the one-level merge applied when a backend is constructed.

Why:
  Backends are interchangeable: the configuration selects one by kind and
  the facade only ever calls ``deliver`` or ``find``/``first``/``last``/
  ``all``. Keeping the settings merge, ledger bookkeeping and result
  selection in the base classes means a new backend only implements the wire
  transfer itself.

How:
  ``DeliveryMethod.deliver`` is a template method: it calls the subclass's
  ``_transmit`` and, only when that returns, appends the message to the
  deliveries ledger. ``RetrieverMethod`` derives ``first``/``last``/``all``
  from ``find`` and offers :meth:`RetrieverMethod._select` to apply the
  ``what``/``order``/``count`` criteria to a fetched list.

Interfaces:
  :func:`merge_settings`, :class:`DeliveryMethod`, :class:`RetrieverMethod`.

Invariants & Safety:
  - The ledger only sees messages whose transmission returned normally.
  - Settings passed by callers are copied, never mutated.
"""
from __future__ import annotations

import abc
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from ..ledger import DeliveriesLedger, get_deliveries
from ..utils.logging import JsonLogger, get_logger
from ..utils.privacy import redact_settings


def merge_settings(defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Overlay ``overrides`` on ``defaults`` one level deep.

    Keys only in ``overrides`` are added, keys in both take the override
    value, and keys only in ``defaults`` keep the default. Nested values are
    replaced wholesale, not merged.

    Args:
      defaults: Backend built-in settings.
      overrides: Caller-supplied settings, or ``None``.

    Returns:
      A new dictionary; neither input is modified.
    """

    merged = dict(defaults)
    if overrides:
        merged.update(overrides)
    return merged


class DeliveryMethod(abc.ABC):
    """Contract implemented by every delivery backend.

    What:
      Owns the merged settings and the ledger a backend reports into, and
      exposes :meth:`deliver`.

    Why:
      The ledger append and the returned-message chaining are identical for
      every transport; subclasses should not be able to forget them.

    How:
      Subclasses declare :attr:`KIND` and :attr:`DEFAULTS` and implement
      :meth:`_transmit`, raising :class:`~mailwire.errors.DeliveryFailed` on
      transport errors.
    """

    KIND: ClassVar[str] = ""
    DEFAULTS: ClassVar[Dict[str, Any]] = {}

    def __init__(
        self,
        settings: Optional[Mapping[str, Any]] = None,
        *,
        ledger: Optional[DeliveriesLedger] = None,
    ) -> None:
        self.settings: Dict[str, Any] = merge_settings(self.DEFAULTS, settings)
        self.ledger = ledger if ledger is not None else get_deliveries()
        self.logger: JsonLogger = get_logger(f"mailwire.delivery.{self.KIND}")

    def deliver(self, message: Any) -> Any:
        """Transmit ``message`` and record it in the ledger.

        Args:
          message: A :class:`~mailwire.message.Message` (or any object
            exposing ``destinations``, ``return_path`` and ``to_lf``).

        Returns:
          The same message, for chaining.

        Raises:
          DeliveryFailed: When the backend could not hand the message over.
        """

        self._transmit(message)
        self.ledger.append(message)
        self.logger.info(
            "message delivered",
            kind=self.KIND,
            destinations=len(message.destinations),
        )
        return message

    @abc.abstractmethod
    def _transmit(self, message: Any) -> None:
        """Perform the backend-specific hand-over of ``message``."""

    def safe_settings(self) -> Dict[str, Any]:
        """Settings with credentials masked, for errors and logs."""

        return redact_settings(self.settings)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.safe_settings()!r})"


class RetrieverMethod(abc.ABC):
    """Contract implemented by every retriever backend.

    What:
      Exposes ``find`` plus the ``first``/``last``/``all`` shortcuts the
      facade forwards to.

    How:
      Subclasses implement :meth:`find` accepting the criteria documented on
      :meth:`_select` and usually delegate the slicing to it.
    """

    KIND: ClassVar[str] = ""
    DEFAULTS: ClassVar[Dict[str, Any]] = {}

    def __init__(
        self,
        settings: Optional[Mapping[str, Any]] = None,
        *,
        ledger: Optional[DeliveriesLedger] = None,
    ) -> None:
        self.settings: Dict[str, Any] = merge_settings(self.DEFAULTS, settings)
        self.ledger = ledger if ledger is not None else get_deliveries()
        self.logger: JsonLogger = get_logger(f"mailwire.retriever.{self.KIND}")

    @abc.abstractmethod
    def find(self, **criteria: Any) -> Any:
        """Return messages matching ``criteria``."""

    def first(self, **criteria: Any) -> Any:
        """Oldest message (or the oldest ``count`` messages)."""

        criteria.setdefault("count", 1)
        criteria["what"] = "first"
        return self.find(**criteria)

    def last(self, **criteria: Any) -> Any:
        """Newest message (or the newest ``count`` messages)."""

        criteria.setdefault("count", 1)
        criteria["what"] = "last"
        return self.find(**criteria)

    def all(self, **criteria: Any) -> Any:
        """Every message in the mailbox."""

        criteria["count"] = "all"
        return self.find(**criteria)

    @staticmethod
    def _select(
        items: List[Any],
        *,
        what: str = "first",
        order: str = "asc",
        count: Any = 10,
    ) -> Any:
        """Apply the shared retrieval criteria to ``items``.

        Args:
          items: Messages (or message handles) ordered oldest first.
          what: ``"first"`` takes from the oldest end, ``"last"`` from the
            newest end.
          order: ``"asc"`` returns oldest first, ``"desc"`` newest first.
          count: Number of entries, or ``"all"``.

        Returns:
          A single entry when ``count == 1``, otherwise a list.

        Raises:
          ValueError: On unsupported ``what``/``order``/``count`` values.
        """

        if what not in ("first", "last"):
            raise ValueError(f"what must be 'first' or 'last', not {what!r}")
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', not {order!r}")
        if count == "all":
            selected = list(items)
        elif isinstance(count, int) and not isinstance(count, bool) and count >= 0:
            selected = list(items[:count]) if what == "first" else list(items[-count:] if count else [])
        else:
            raise ValueError(f"count must be a non-negative integer or 'all', not {count!r}")
        if order == "desc":
            selected.reverse()
        if count == 1:
            return selected[0] if selected else None
        return selected

    def safe_settings(self) -> Dict[str, Any]:
        return redact_settings(self.settings)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.safe_settings()!r})"

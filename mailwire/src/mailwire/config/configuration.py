"""Delivery and retriever backend selection.

What:
  Provide :class:`Configuration`, which records the selected delivery and
  retriever kinds together with the caller's settings and instantiates the
  matching backends on request, plus the lazily-created process-wide
  instance used by the :mod:`mailwire` facade.

Why:
  Applications pick a transport once (``sendmail`` on this host, ``smtp``
  with credentials on that one) and then simply call ``deliver``. Libraries
  and tests that need isolation construct their own :class:`Configuration`
  and pass it explicitly instead of touching the shared one.

How:
  The selection is stored as a ``(backend class, settings)`` pair per
  family and swapped atomically under a lock. Backends are built fresh on
  each :meth:`Configuration.delivery_method` call so they always reflect the
  latest selection; the backend merges the caller settings over its own
  ``DEFAULTS``. When nothing was declared the built-in ``smtp``/``pop3``
  defaults apply.

Interfaces:
  :class:`Configuration`, :func:`get_configuration`,
  :func:`reset_configuration`.

Invariants & Safety:
  - Selecting an unknown kind raises
    :class:`~mailwire.errors.UnknownBackendKind` immediately, before any
    transport is touched.
  - Each selection replaces the previous one for that family entirely
    (last writer wins); settings are not merged across declarations.
  - :func:`reset_configuration` returns the shared instance to its
    unconfigured state for test isolation.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from ..errors import NotConfigured
from ..ledger import DeliveriesLedger
from ..network import (
    DeliveryMethod,
    RetrieverMethod,
    merge_settings,
    resolve_delivery_method,
    resolve_retriever_method,
)

DEFAULT_DELIVERY_KIND = "smtp"
DEFAULT_RETRIEVER_KIND = "pop3"

_Selection = Tuple[type, Dict[str, Any]]


class Configuration:
    """Selected delivery/retriever backends and their settings.

    What:
      Holds one selection per backend family and builds backend instances.

    Why:
      Keeps the "which transport, with which settings" decision in a single
      object that can be shared process-wide or injected explicitly.

    How:
      :meth:`set_delivery_method` / :meth:`set_retriever_method` resolve the
      kind through the registry and store a copy of the settings;
      :meth:`delivery_method` / :meth:`retriever_method` instantiate.

    Args:
      use_builtin_defaults: When ``False``, asking for a backend before one
        was selected raises :class:`~mailwire.errors.NotConfigured` instead
        of falling back to ``smtp``/``pop3``.
      ledger: Deliveries ledger handed to every delivery and retriever
        backend built by this configuration; defaults to the process-wide
        ledger.
    """

    def __init__(
        self,
        *,
        use_builtin_defaults: bool = True,
        ledger: Optional[DeliveriesLedger] = None,
    ) -> None:
        self._lock = threading.RLock()
        self.use_builtin_defaults = use_builtin_defaults
        self.ledger = ledger
        self._delivery: Optional[_Selection] = None
        self._retriever: Optional[_Selection] = None

    # Declarations -------------------------------------------------------
    def set_delivery_method(self, kind: Any, settings: Optional[Mapping[str, Any]] = None) -> None:
        """Select the delivery backend ``kind`` with ``settings``.

        Args:
          kind: Registered name (``"sendmail"``) or a
            :class:`~mailwire.network.DeliveryMethod` subclass.
          settings: Overrides merged over the backend's defaults.

        Raises:
          UnknownBackendKind: When ``kind`` is not registered.
        """

        cls = resolve_delivery_method(kind)
        with self._lock:
            self._delivery = (cls, dict(settings or {}))

    def set_retriever_method(self, kind: Any, settings: Optional[Mapping[str, Any]] = None) -> None:
        """Select the retriever backend ``kind`` with ``settings``.

        Raises:
          UnknownBackendKind: When ``kind`` is not registered.
        """

        cls = resolve_retriever_method(kind)
        with self._lock:
            self._retriever = (cls, dict(settings or {}))

    def declare(self, block: Callable[["Configuration"], Any]) -> "Configuration":
        """Run ``block(self)`` so it can issue ``set_*`` declarations.

        Returns:
          ``self`` for chaining.
        """

        with self._lock:
            block(self)
        return self

    def reset(self) -> None:
        """Forget every declaration."""

        with self._lock:
            self._delivery = None
            self._retriever = None

    # Resolution ---------------------------------------------------------
    def _delivery_selection(self) -> _Selection:
        with self._lock:
            selection = self._delivery
        if selection is not None:
            return selection
        if not self.use_builtin_defaults:
            raise NotConfigured("delivery")
        return resolve_delivery_method(DEFAULT_DELIVERY_KIND), {}

    def _retriever_selection(self) -> _Selection:
        with self._lock:
            selection = self._retriever
        if selection is not None:
            return selection
        if not self.use_builtin_defaults:
            raise NotConfigured("retriever")
        return resolve_retriever_method(DEFAULT_RETRIEVER_KIND), {}

    def delivery_method(self) -> DeliveryMethod:
        """Instantiate the selected delivery backend.

        Raises:
          NotConfigured: When nothing was selected and built-in defaults are
            disabled.
        """

        cls, settings = self._delivery_selection()
        return cls(settings, ledger=self.ledger)

    def retriever_method(self) -> RetrieverMethod:
        """Instantiate the selected retriever backend.

        Raises:
          NotConfigured: When nothing was selected and built-in defaults are
            disabled.
        """

        cls, settings = self._retriever_selection()
        return cls(settings, ledger=self.ledger)

    @property
    def delivery_kind(self) -> str:
        cls, _ = self._delivery_selection()
        return cls.KIND

    @property
    def retriever_kind(self) -> str:
        cls, _ = self._retriever_selection()
        return cls.KIND

    @property
    def delivery_settings(self) -> Dict[str, Any]:
        """Effective delivery settings (backend defaults plus overrides)."""

        cls, settings = self._delivery_selection()
        return merge_settings(cls.DEFAULTS, settings)

    @property
    def retriever_settings(self) -> Dict[str, Any]:
        """Effective retriever settings (backend defaults plus overrides)."""

        cls, settings = self._retriever_selection()
        return merge_settings(cls.DEFAULTS, settings)

    def __repr__(self) -> str:
        with self._lock:
            delivery = self._delivery[0].KIND if self._delivery else None
            retriever = self._retriever[0].KIND if self._retriever else None
        return f"Configuration(delivery={delivery!r}, retriever={retriever!r})"


_CONFIGURATION: Optional[Configuration] = None
_CONFIGURATION_LOCK = threading.Lock()


def get_configuration() -> Configuration:
    """Return the process-wide :class:`Configuration`, creating it lazily."""

    global _CONFIGURATION

    with _CONFIGURATION_LOCK:
        if _CONFIGURATION is None:
            _CONFIGURATION = Configuration()
        return _CONFIGURATION


def reset_configuration() -> None:
    """Return the process-wide configuration to its unconfigured state.

    What:
      Clears every declaration on the shared instance.

    Why:
      Test suites need each case to start from the built-in defaults no
      matter what earlier cases declared.

    How:
      Calls :meth:`Configuration.reset` when the instance exists; the object
      identity is kept so references held elsewhere stay valid.
    """

    with _CONFIGURATION_LOCK:
        configuration = _CONFIGURATION
    if configuration is not None:
        configuration.reset()

"""Write outgoing messages to per-recipient files.

What:
  Implement the ``file`` delivery method: append the line-feed normalised
  message to ``<location>/<address>`` once per destination.

Why:
  Useful in development and staging, where mail should be inspected on disk
  instead of leaving the host.

How:
  Creates ``location`` on demand and appends in binary mode so successive
  deliveries to the same address accumulate in one file.

Interfaces:
  :class:`FileDelivery`.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Dict

from ...errors import DeliveryFailed
from ..base import DeliveryMethod


class FileDelivery(DeliveryMethod):
    """Delivery method appending messages to files named after recipients."""

    KIND: ClassVar[str] = "file"
    DEFAULTS: ClassVar[Dict[str, Any]] = {"location": "mails"}

    def path_for(self, address: str) -> Path:
        # Path separators in an address would escape ``location``.
        safe_name = address.replace("/", "_").replace("\\", "_")
        return Path(self.settings["location"]).expanduser() / safe_name

    def _transmit(self, message: Any) -> None:
        payload = message.to_lf()
        try:
            Path(self.settings["location"]).expanduser().mkdir(parents=True, exist_ok=True)
            for address in message.destinations:
                with self.path_for(address).open("ab") as handle:
                    handle.write(payload)
        except OSError as exc:
            raise DeliveryFailed(str(exc), kind=self.KIND, settings=self.safe_settings()) from exc

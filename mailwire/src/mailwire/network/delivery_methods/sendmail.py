"""Deliver messages by piping them into a local sendmail binary.

What:
  Implement the ``sendmail`` delivery method: compute the command line from
  the configured arguments, the message's return path and its destinations,
  spawn the binary, and stream the line-feed normalised message into its
  standard input.

Why:
  Hosts running Postfix, Exim or sendmail proper accept mail through the
  ``sendmail`` compatibility interface without any network configuration.

How:
  :meth:`Sendmail.build_command` produces an argument vector (no shell is
  involved, so addresses cannot inject commands); :meth:`Sendmail.call`
  spawns it with :class:`subprocess.Popen` and lets ``communicate`` write,
  flush and close stdin before waiting for the exit status, honouring the
  optional ``timeout`` setting.
  :meth:`Sendmail.build_arguments` renders the same arguments as a single
  string for logs and diagnostics.

Usage::

    mailwire.defaults(lambda config: config.set_delivery_method(
        "sendmail", {"location": "/usr/lib/sendmail"}))

Interfaces:
  :class:`Sendmail`.

Invariants & Safety:
  - A missing binary, a permission error, a non-zero exit status or a
    timeout raise :class:`~mailwire.errors.DeliveryFailed`; nothing is
    retried.
  - The ledger is only appended to after the process exited with status 0.
"""
from __future__ import annotations

import shlex
import subprocess
from typing import Any, ClassVar, Dict, List, Optional

from ...errors import DeliveryFailed
from ..base import DeliveryMethod


class Sendmail(DeliveryMethod):
    """Delivery method spawning an external sendmail-compatible program."""

    KIND: ClassVar[str] = "sendmail"
    DEFAULTS: ClassVar[Dict[str, Any]] = {
        "location": "/usr/sbin/sendmail",
        "arguments": "-i -t",
        "timeout": None,
    }

    @staticmethod
    def _return_path(message: Any) -> Optional[str]:
        return_path = getattr(message, "return_path", None)
        return return_path or None

    def build_arguments(self, message: Any) -> str:
        """Render the command-line arguments as one string.

        The configured ``arguments`` come first, then ``-f "<return path>"``
        when the message has one, then the destinations separated by spaces.
        """

        parts: List[str] = []
        if self.settings.get("arguments"):
            parts.append(str(self.settings["arguments"]))
        return_path = self._return_path(message)
        if return_path:
            parts.append(f'-f "{return_path}"')
        parts.extend(message.destinations)
        return " ".join(parts)

    def build_command(self, message: Any) -> List[str]:
        """Return the argument vector handed to :class:`subprocess.Popen`."""

        command = [str(self.settings["location"])]
        command.extend(shlex.split(str(self.settings.get("arguments") or "")))
        return_path = self._return_path(message)
        if return_path:
            command.extend(["-f", return_path])
        command.extend(message.destinations)
        return command

    def _transmit(self, message: Any) -> None:
        self.logger.debug("spawning sendmail", arguments=self.build_arguments(message))
        self.call(self.build_command(message), message.to_lf())

    def call(self, command: List[str], payload: bytes) -> int:
        """Spawn ``command``, feed it ``payload`` and wait for it to exit.

        Args:
          command: Argument vector; ``command[0]`` is the binary.
          payload: Rendered message bytes.

        Returns:
          The exit status (always ``0``; anything else raises).

        Raises:
          DeliveryFailed: When the process cannot be spawned, times out or
            exits non-zero.
        """

        timeout = self.settings.get("timeout")
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            self.logger.error("sendmail spawn failed", location=command[0], error=str(exc))
            raise DeliveryFailed(
                f"cannot run {command[0]}: {exc.strerror or exc}",
                kind=self.KIND,
                settings=self.safe_settings(),
            ) from exc

        # communicate() writes, flushes and closes stdin before waiting.
        try:
            _, stderr = process.communicate(input=payload, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            process.kill()
            process.communicate()
            raise DeliveryFailed(
                f"{command[0]} did not exit within {timeout} seconds",
                kind=self.KIND,
                settings=self.safe_settings(),
            ) from exc

        status = process.returncode
        if status != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            self.logger.error("sendmail exited with an error", status=status)
            raise DeliveryFailed(
                detail or f"{command[0]} exited with a non-zero status",
                kind=self.KIND,
                settings=self.safe_settings(),
                status=status,
            )
        return status

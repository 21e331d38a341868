"""Generate collision-resistant tags for Message-IDs and MIME boundaries.

What:
  Provide :class:`IdentifierGenerator`, which builds opaque tags out of the
  wall clock, the process id, the calling thread and a per-process counter,
  plus helpers that wrap a process-wide generator.

Why:
  Message-IDs must be unique across messages built in the same process (even
  from concurrent threads) and across processes on the same host that start
  within the same microsecond. Each ingredient alone collides; combined they
  do not in practice.

How:
  Format ``"%x%x_%x%x%d%x"`` over epoch seconds, microseconds, pid, the
  absolute hash of the thread identity, the counter, and a random byte. The
  counter starts from a pseudo-random three-digit seed so restarted processes
  do not replay the same sequence, and is advanced under a lock.

Interfaces:
  :class:`IdentifierGenerator`, :func:`random_tag`, :func:`make_message_id`.

Invariants & Safety:
  - Tag generation never raises.
  - Each call observes a distinct counter value, whatever the number of
    threads calling concurrently.
"""
from __future__ import annotations

import os
import random
import socket
import threading
import time
from typing import Optional


def _something_random() -> int:
    """Seed value: the last three digits of a thread/clock/random mix."""

    mixed = threading.get_ident() * random.randrange(255) / time.time()
    digits = "".join(ch for ch in repr(mixed) if ch.isdigit())
    return int(digits[-3:] or "0")


class IdentifierGenerator:
    """Produce unique tags; safe to share between threads.

    What:
      Holds the monotonically increasing counter used as the tie-breaker
      between tags generated within the same microsecond.

    How:
      :meth:`next_tag` samples the clock and thread identity, takes the next
      counter value under :attr:`_lock`, and formats the tag.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._counter = _something_random() if seed is None else seed

    def _next_counter(self) -> int:
        with self._lock:
            self._counter += 1
            return self._counter

    def next_tag(self) -> str:
        """Return a new tag such as ``4a8a3f0d8c2b1_1f2a7f3e4d5c6b7a1043e2``.

        Returns:
          Lowercase hexadecimal/decimal token with a single underscore.
        """

        now = time.time_ns() // 1000
        seconds, micros = divmod(now, 1_000_000)
        thread_hash = abs(hash(threading.current_thread()))
        return "%x%x_%x%x%d%x" % (
            seconds,
            micros,
            os.getpid(),
            thread_hash,
            self._next_counter(),
            random.randrange(255),
        )


_GENERATOR = IdentifierGenerator()


def random_tag() -> str:
    """Return a tag from the process-wide :class:`IdentifierGenerator`."""

    return _GENERATOR.next_tag()


def make_message_id(domain: Optional[str] = None) -> str:
    """Build an RFC 5322 ``Message-ID`` value.

    Args:
      domain: Right-hand side of the id; defaults to the host name.

    Returns:
      Identifier of the form ``<tag@host.mail>``.
    """

    host = domain or socket.gethostname() or "localhost"
    return f"<{random_tag()}@{host}.mail>"

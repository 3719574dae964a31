"""Per-identity mutual exclusion for the evaluate-then-record sequence.

Two channels can deliver the same recording at the same moment. Both would
miss in the archive and both would proceed. Holding locks keyed by the
recording's identity from gate evaluation until the archival write commits
closes that window. Distinct recordings never share a lock.

An observation is locked under its compact identity and, when it has one,
its fingerprint as well: a re-recorded meeting arrives with a new instance
identifier but the same fingerprint, and must still serialize against the
original. Keys are always acquired in sorted order.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

from recspine.core.models import CanonicalIdentity


def lock_keys(identity: CanonicalIdentity | None, fingerprint: str | None) -> list[str]:
    """Lock keys for one observation, in acquisition order."""
    keys = []
    if identity is not None:
        keys.append(f"id:{identity.compact}")
    if fingerprint:
        keys.append(f"fp:{fingerprint}")
    return sorted(keys)


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class IdentityLockRegistry:
    """
    Lazily created, reference-counted locks keyed by identity.

    Entries are dropped once no thread holds or waits on them, so the
    registry stays proportional to in-flight recordings.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Hold the locks for every key; no keys holds nothing."""
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                stack.enter_context(self._hold_one(key))
            yield

    @contextmanager
    def _hold_one(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[key]

    def active_keys(self) -> list[str]:
        with self._guard:
            return sorted(self._entries)

"""Thread-safe in-memory archive store.

Used by tests and by single-process runs that do not need durability. Reads
observe every completed write (read-after-write), which the per-identity
locking in ``recspine.intake`` relies on.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from recspine.core.models import ArchiveRecord


class InMemoryArchive:
    """Dict-backed ``RecordLookup`` and ``ArchiveWriter``.

    Identifier text is matched exactly as stored, the way the real archive
    column behaves; probing across encodings is the duplicate gate's job.
    When several rows share a key, the oldest one is returned.
    """

    def __init__(self, records: Iterable[ArchiveRecord] = ()):
        self._lock = threading.Lock()
        self._records: list[ArchiveRecord] = []
        self._by_identifier: dict[str, ArchiveRecord] = {}
        self._by_fingerprint: dict[str, ArchiveRecord] = {}
        for record in records:
            self.record(record)

    def find_by_identity(self, value: str) -> ArchiveRecord | None:
        with self._lock:
            return self._by_identifier.get(value.strip())

    def find_by_fingerprint(self, fingerprint: str) -> ArchiveRecord | None:
        with self._lock:
            return self._by_fingerprint.get(fingerprint)

    def record(self, record: ArchiveRecord) -> None:
        with self._lock:
            self._records.append(record)
            self._by_identifier.setdefault(record.identifier.strip(), record)
            if record.fingerprint:
                self._by_fingerprint.setdefault(record.fingerprint, record)

    def snapshot(self) -> list[ArchiveRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

"""
Collaborator contracts for rec-spine.

The gate and intake depend on these shapes, never on a concrete store, so
a spreadsheet-backed archive, the SQL archive and the in-memory archive used
in tests are interchangeable.

Manifesto:
    There are no process-wide "already seen" maps. The archive is an
    injected collaborator with one consistency requirement:
    a ``record()`` that returns must be visible to the next
    ``find_by_identity()`` / ``find_by_fingerprint()`` call
    (read-after-write). The per-identity lock in the intake is only correct
    under that guarantee.

Tags:
    protocol, lookup, archive, approval, decoupling
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .enums import DecisionOutcome, MatchMethod
from .models import ArchiveRecord, CanonicalIdentity


@runtime_checkable
class RecordLookup(Protocol):
    """
    Read-only view of previously processed recordings.

    ``find_by_identity`` must accept identifier text in any of the three
    encodings without rejecting it; matching is exact on the stored text.
    """

    def find_by_identity(self, value: str) -> ArchiveRecord | None:
        """Return the prior record stored under this identifier text."""
        ...

    def find_by_fingerprint(self, fingerprint: str) -> ArchiveRecord | None:
        """Return the prior record carrying this fingerprint."""
        ...


@runtime_checkable
class ArchiveWriter(Protocol):
    """Persists the outcome of a processing attempt."""

    def record(self, record: ArchiveRecord) -> None:
        """Write the record; visible to lookups once this returns."""
        ...


@runtime_checkable
class ApprovalPolicy(Protocol):
    """
    Decides what happens to an observation that matched a prior record.

    Implementations may block waiting for a human. Returning anything other
    than SKIP_DUPLICATE or PROCEED_OVERRIDE is a programming error.
    """

    def decide(
        self,
        candidate: CanonicalIdentity | None,
        prior: ArchiveRecord,
        method: MatchMethod,
    ) -> DecisionOutcome:
        ...

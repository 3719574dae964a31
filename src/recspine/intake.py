"""
Recording intake: the path every new observation takes.

Manifesto:
    Push notifications, bulk pulls and manual imports all end up here. The
    same recording can arrive on two channels at once, or arrive again
    after a retry. Canonicalization, fingerprinting and the duplicate gate
    decide whether it is worth processing. Only then is it classified and
    written to the archive. A recording that fails is counted and reported
    with its error kind; nothing is dropped from the run silently.

Architecture:
    ::

        process(metadata, name_resolution)
          ├── IdentityCodec.canonicalize        (MalformedIdentifier / UnknownEncoding)
          ├── FingerprintGenerator              (InvalidFingerprintInput)
          └── IdentityLockRegistry.hold(id, fp)
                ├── DuplicateGate.evaluate      (LookupUnavailable under FAIL_CLOSED)
                │     SKIP_DUPLICATE -> release
                ├── CategoryClassifier.classify
                └── ArchiveWriter.record        -> release

        process_many(batch) -> RunSummary

Tags:
    intake, deduplication, pipeline, concurrency, rec-spine
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from recspine.classify.classifier import CategoryClassifier
from recspine.classify.filing import FilingHint, filing_hint
from recspine.core.enums import DecisionOutcome
from recspine.core.errors import IdentityError, error_kind
from recspine.core.logging import LogContext, get_logger
from recspine.core.models import (
    ArchiveRecord,
    ClassificationResult,
    NameResolution,
    ProcessingDecision,
    RecordingMetadata,
)
from recspine.core.protocols import ArchiveWriter, RecordLookup
from recspine.core.timestamps import generate_ulid
from recspine.gate.duplicate import DuplicateGate
from recspine.gate.locks import IdentityLockRegistry, lock_keys
from recspine.identity.codec import IdentityCodec
from recspine.identity.fingerprint import FingerprintGenerator

logger = get_logger(__name__)


@dataclass(frozen=True)
class IntakeOutcome:
    """What happened to one observation."""

    identifier: str | None
    decision: ProcessingDecision
    classification: ClassificationResult | None = None
    filing: FilingHint | None = None
    record: ArchiveRecord | None = None


@dataclass(frozen=True)
class RecordingFailure:
    identifier: str | None
    kind: str
    message: str


@dataclass
class RunSummary:
    """
    Counts for one batch.

    Each attempted recording is counted once as new, overridden, skipped or
    failed. ``incomplete`` counts classified recordings with missing fields,
    so it overlaps ``new`` and ``overridden``.
    """

    attempted: int = 0
    new: int = 0
    overridden: int = 0
    skipped: int = 0
    incomplete: int = 0
    failures: list[RecordingFailure] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_outcome(self, outcome: IntakeOutcome) -> None:
        with self._lock:
            self.attempted += 1
            match outcome.decision.outcome:
                case DecisionOutcome.PROCEED_NEW:
                    self.new += 1
                case DecisionOutcome.PROCEED_OVERRIDE:
                    self.overridden += 1
                case DecisionOutcome.SKIP_DUPLICATE:
                    self.skipped += 1
            if outcome.classification is not None and not outcome.classification.complete:
                self.incomplete += 1

    def add_failure(self, identifier: str | None, error: BaseException) -> None:
        with self._lock:
            self.attempted += 1
            self.failures.append(RecordingFailure(identifier, error_kind(error), str(error)))

    @property
    def failed(self) -> int:
        return len(self.failures)

    def failures_by_kind(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for failure in self.failures:
            counts[failure.kind] = counts.get(failure.kind, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempted": self.attempted,
            "new": self.new,
            "overridden": self.overridden,
            "skipped": self.skipped,
            "incomplete": self.incomplete,
            "failed": self.failed,
            "failures_by_kind": self.failures_by_kind(),
        }


class RecordingIntake:
    """Runs observations through identity, gate, classification and archival."""

    def __init__(
        self,
        gate: DuplicateGate,
        classifier: CategoryClassifier,
        lookup: RecordLookup,
        writer: ArchiveWriter,
        codec: IdentityCodec | None = None,
        fingerprinter: FingerprintGenerator | None = None,
        locks: IdentityLockRegistry | None = None,
    ):
        self.gate = gate
        self.classifier = classifier
        self.lookup = lookup
        self.writer = writer
        self.codec = codec or IdentityCodec()
        self.fingerprinter = fingerprinter or FingerprintGenerator()
        self.locks = locks or IdentityLockRegistry()

    def process(
        self,
        metadata: RecordingMetadata,
        name_resolution: NameResolution | None = None,
    ) -> IntakeOutcome:
        """
        Gate, classify and archive one observation.

        Raises:
            IdentityError: Identifier malformed, or nothing to deduplicate on
            InvalidFingerprintInputError: Fingerprint inputs unusable
            LookupUnavailableError: Archive unreachable under FAIL_CLOSED
        """
        source_id = metadata.identifier.value if metadata.identifier else None
        identity = self.codec.canonicalize(metadata.identifier) if metadata.identifier else None
        fingerprint = self.fingerprinter.fingerprint_metadata(metadata)
        if identity is None and fingerprint is None:
            raise IdentityError(
                "Recording has no identifier and no meeting id/start time to fingerprint"
            ).with_context(operation="intake")

        with LogContext(identity=identity.compact if identity else None, fingerprint=fingerprint):
            with self.locks.hold(*lock_keys(identity, fingerprint)):
                decision = self.gate.evaluate(identity, fingerprint, self.lookup)
                if not decision.proceeds:
                    logger.info(
                        "intake.skipped",
                        prior_record=decision.prior.record_id if decision.prior else None,
                    )
                    return IntakeOutcome(identifier=source_id, decision=decision)

                classification = self.classifier.classify(metadata, name_resolution)
                hint = filing_hint(classification)
                record = ArchiveRecord(
                    record_id=generate_ulid(),
                    identifier=identity.compact if identity else "",
                    fingerprint=fingerprint,
                    external_meeting_id=metadata.external_meeting_id,
                    topic=metadata.topic,
                    start_time=metadata.start_time,
                    category=classification.category,
                    location=hint.path_segment,
                )
                self.writer.record(record)

            logger.info(
                "intake.recorded",
                outcome=decision.outcome.value,
                category=classification.category.value,
                rule=classification.rule_name,
                record_id=record.record_id,
            )
            return IntakeOutcome(
                identifier=source_id,
                decision=decision,
                classification=classification,
                filing=hint,
                record=record,
            )

    def process_many(
        self,
        batch: Iterable[tuple[RecordingMetadata, NameResolution | None]],
        max_workers: int = 1,
    ) -> RunSummary:
        """Process a batch; per-recording failures are counted, not raised."""
        summary = RunSummary()

        def run_one(item: tuple[RecordingMetadata, NameResolution | None]) -> None:
            metadata, names = item
            source_id = metadata.identifier.value if metadata.identifier else None
            try:
                outcome = self.process(metadata, names)
            except Exception as e:
                logger.error(
                    "intake.failed",
                    identifier=source_id,
                    error_kind=error_kind(e),
                    error=str(e),
                )
                summary.add_failure(source_id, e)
            else:
                summary.add_outcome(outcome)

        items = list(batch)
        if max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                list(pool.map(run_one, items))
        else:
            for item in items:
                run_one(item)

        logger.info("intake.run_complete", **summary.to_dict())
        return summary

"""
Tests for the recording intake pipeline.

Tests verify:
- New recordings are classified, filed and archived
- Duplicates are skipped across encodings and identifier rotation
- Concurrent observations of one recording produce one archive row
- Batch failures are counted by kind, never dropped
"""

import threading

import pytest
from conftest import COMPACT_ID, HEX_ID, START, make_metadata, make_record, random_compact_ids
from structlog.testing import capture_logs

from recspine.classify.classifier import CategoryClassifier
from recspine.core.enums import Category, DecisionOutcome, MatchMethod
from recspine.core.errors import IdentityError, LookupUnavailableError, MalformedIdentifierError
from recspine.core.models import RecordingIdentifier
from recspine.gate.approval import AlwaysOverride, AutoApprove
from recspine.gate.duplicate import DuplicateGate
from recspine.identity.fingerprint import FingerprintGenerator
from recspine.intake import RecordingIntake, RunSummary
from recspine.storage.memory import InMemoryArchive

ROTATED_ID = "AAECAwQFBgcICQoLDA0ODw=="


def build_intake(archive, approval=None, lookup=None):
    return RecordingIntake(
        gate=DuplicateGate(approval or AutoApprove()),
        classifier=CategoryClassifier(),
        lookup=lookup or archive,
        writer=archive,
    )


class BrokenLookup:
    def find_by_identity(self, value):
        raise LookupUnavailableError("archive down")

    def find_by_fingerprint(self, fingerprint):
        raise LookupUnavailableError("archive down")


class TestProcess:
    def test_new_recording_archived(self, memory_archive, resolved_names):
        outcome = build_intake(memory_archive).process(make_metadata(), resolved_names)

        assert outcome.decision.outcome is DecisionOutcome.PROCEED_NEW
        assert outcome.classification.category is Category.COACHING
        assert outcome.filing.path_segment == "Coaching"

        [stored] = memory_archive.snapshot()
        assert stored == outcome.record
        assert stored.identifier == COMPACT_ID
        assert stored.fingerprint == FingerprintGenerator().fingerprint("81234567890", START)
        assert stored.category is Category.COACHING
        assert stored.location == "Coaching"

    def test_legacy_hex_observation_stored_compact(self, memory_archive):
        metadata = make_metadata(identifier=RecordingIdentifier(HEX_ID))
        outcome = build_intake(memory_archive).process(metadata)
        assert outcome.record.identifier == COMPACT_ID
        assert outcome.identifier == HEX_ID

    def test_second_observation_skipped(self, memory_archive, resolved_names):
        intake = build_intake(memory_archive)
        intake.process(make_metadata(), resolved_names)
        with capture_logs() as logs:
            outcome = intake.process(make_metadata(), resolved_names)

        assert outcome.decision.outcome is DecisionOutcome.SKIP_DUPLICATE
        assert outcome.classification is None
        assert outcome.record is None
        assert len(memory_archive) == 1
        assert any(e["event"] == "intake.skipped" for e in logs)

    def test_legacy_archive_row_blocks_compact_observation(self):
        archive = InMemoryArchive([make_record(identifier=HEX_ID)])
        outcome = build_intake(archive).process(make_metadata())
        assert outcome.decision.method is MatchMethod.LEGACY_HEX
        assert len(archive) == 1

    def test_rotated_identifier_skipped_by_fingerprint(self, memory_archive):
        intake = build_intake(memory_archive)
        intake.process(make_metadata())
        outcome = intake.process(make_metadata(identifier=RecordingIdentifier(ROTATED_ID)))

        assert outcome.decision.outcome is DecisionOutcome.SKIP_DUPLICATE
        assert outcome.decision.method is MatchMethod.FINGERPRINT

    def test_override_writes_again(self, memory_archive):
        intake = build_intake(memory_archive, approval=AlwaysOverride())
        intake.process(make_metadata())
        outcome = intake.process(make_metadata())

        assert outcome.decision.outcome is DecisionOutcome.PROCEED_OVERRIDE
        assert len(memory_archive) == 2

    def test_fingerprint_only_observation(self, memory_archive):
        intake = build_intake(memory_archive)
        first = intake.process(make_metadata(identifier=None))
        second = intake.process(make_metadata(identifier=None))

        assert first.record.identifier == ""
        assert second.decision.method is MatchMethod.FINGERPRINT

    def test_nothing_to_deduplicate_on(self, memory_archive):
        metadata = make_metadata(identifier=None, external_meeting_id=None)
        with pytest.raises(IdentityError):
            build_intake(memory_archive).process(metadata)
        assert len(memory_archive) == 0

    def test_blank_meeting_id_falls_back_to_identifier(self, memory_archive):
        outcome = build_intake(memory_archive).process(make_metadata(external_meeting_id="  "))
        assert outcome.decision.proceeds
        assert outcome.record.fingerprint is None

    def test_malformed_identifier_rejected(self, memory_archive):
        metadata = make_metadata(identifier=RecordingIdentifier("abc123=="))
        with pytest.raises(MalformedIdentifierError):
            build_intake(memory_archive).process(metadata)

    def test_lookup_failure_writes_nothing(self, memory_archive):
        intake = build_intake(memory_archive, lookup=BrokenLookup())
        with pytest.raises(LookupUnavailableError):
            intake.process(make_metadata())
        assert len(memory_archive) == 0

    def test_locks_released(self, memory_archive):
        intake = build_intake(memory_archive)
        intake.process(make_metadata())
        assert intake.locks.active_keys() == []


class TestConcurrentIntake:
    def test_simultaneous_channels_produce_one_record(self, memory_archive):
        """Push and pull deliver the same recording at once, in different encodings."""
        intake = build_intake(memory_archive)
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []
        guard = threading.Lock()

        def deliver(identifier):
            metadata = make_metadata(identifier=RecordingIdentifier(identifier))
            barrier.wait()
            outcome = intake.process(metadata)
            with guard:
                outcomes.append(outcome.decision.outcome)

        threads = [
            threading.Thread(target=deliver, args=(COMPACT_ID if i % 2 else HEX_ID,))
            for i in range(workers)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(memory_archive) == 1
        assert outcomes.count(DecisionOutcome.PROCEED_NEW) == 1
        assert outcomes.count(DecisionOutcome.SKIP_DUPLICATE) == workers - 1


class TestProcessMany:
    def test_failures_counted_by_kind(self, memory_archive, resolved_names):
        batch = [
            (make_metadata(), resolved_names),
            (make_metadata(), resolved_names),
            (make_metadata(identifier=RecordingIdentifier("abc123==")), None),
            (make_metadata(identifier=None, external_meeting_id=None), None),
        ]
        summary = build_intake(memory_archive).process_many(batch)

        assert summary.attempted == 4
        assert summary.new == 1
        assert summary.skipped == 1
        assert summary.failed == 2
        assert summary.failures_by_kind() == {"MalformedIdentifier": 1, "IdentityError": 1}
        assert summary.failures[0].identifier == "abc123=="

    def test_lookup_unavailable_counted(self, memory_archive):
        intake = build_intake(memory_archive, lookup=BrokenLookup())
        with capture_logs() as logs:
            summary = intake.process_many([(make_metadata(), None)])

        assert summary.failures_by_kind() == {"LookupUnavailable": 1}
        assert any(e["event"] == "intake.failed" for e in logs)

    def test_incomplete_classification_counted(self, memory_archive, resolved_names):
        metadata = make_metadata(aggregate_file_size_bytes=None)
        summary = build_intake(memory_archive).process_many([(metadata, resolved_names)])
        assert summary.new == 1
        assert summary.incomplete == 1

    def test_buckets_partition_attempts(self, memory_archive, resolved_names):
        batch = [
            (make_metadata(aggregate_file_size_bytes=None), resolved_names),
            (make_metadata(), resolved_names),
            (make_metadata(identifier=RecordingIdentifier("abc123==")), None),
        ]
        summary = build_intake(memory_archive).process_many(batch)

        buckets = summary.new + summary.overridden + summary.skipped + summary.failed
        assert summary.attempted == buckets == 3
        assert (summary.new, summary.skipped, summary.failed, summary.incomplete) == (1, 1, 1, 1)

    def test_parallel_batch(self, memory_archive):
        batch = [
            (make_metadata(identifier=RecordingIdentifier(value), external_meeting_id=str(i)), None)
            for i, value in enumerate(random_compact_ids(20, seed=3))
        ]
        summary = build_intake(memory_archive).process_many(batch, max_workers=4)

        assert summary.new == 20
        assert summary.failed == 0
        assert len(memory_archive) == 20

    def test_summary_dict(self):
        summary = RunSummary()
        summary.add_failure("x", MalformedIdentifierError("bad"))
        assert summary.to_dict() == {
            "attempted": 1,
            "new": 0,
            "overridden": 0,
            "skipped": 0,
            "incomplete": 0,
            "failed": 1,
            "failures_by_kind": {"MalformedIdentifier": 1},
        }

"""
Reconciliation engine: audit the source channel against archive and storage.

Manifesto:
    The source-of-truth channel, the archive and the file store each hold
    their own view of which recordings exist. Identifiers in the archive
    come in three encodings, some rows were written before identifiers were
    captured at all, and storage uploads can silently drop a file. This
    engine compares the three views offline and reports every discrepancy
    for a human. It never fixes anything.

Architecture:
    ::

        reconcile(sources, archive_records, manifests)
          ├── index archive by canonical identity (IdentityCodec)
          ├── index manifests by canonical identity
          ├── claimed = identities present in the source set
          └── per source (optionally on a thread pool, order kept)
                ├── identity hit            -> matched
                ├── fallback candidates     -> same external meeting id
                │                              OR (similar topic AND same UTC date)
                │     rows sharing one identity count once
                │     0 -> MISSING_IN_ARCHIVE
                │     1 -> matched
                │     n -> AMBIGUOUS_MATCH (candidates listed)
                └── matched: manifest lacks a declared type -> PARTIAL_FILES
                                                  otherwise -> MATCHED

Guardrails:
    Read-only and idempotent: inputs are copied into local indexes and never
    mutated. Archive rows whose identity belongs to another source recording
    are never offered as fallback candidates for this one. Duplicate rows
    of one recording are listed under archive_duplicates, not as candidates.

Tags:
    reconciliation, audit, discrepancy, rec-spine
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from recspine.core.enums import FileType, IdentifierEncoding, MatchMethod, MatchStatus
from recspine.core.errors import IdentityError
from recspine.core.logging import get_logger
from recspine.core.models import (
    ArchiveRecord,
    CanonicalIdentity,
    DiscrepancyReport,
    RecordingIdentifier,
    RecordingMetadata,
    StorageManifest,
)
from recspine.core.timestamps import to_iso8601, utc_now
from recspine.identity.codec import IdentityCodec

from .similarity import same_utc_date, topic_similarity

logger = get_logger(__name__)

_METHOD_BY_ENCODING = {
    IdentifierEncoding.COMPACT: MatchMethod.COMPACT,
    IdentifierEncoding.LEGACY_HEX: MatchMethod.LEGACY_HEX,
    IdentifierEncoding.LEGACY_HEX_DASHED: MatchMethod.LEGACY_HEX_DASHED,
}

_FILE_TYPE_ORDER = {t: i for i, t in enumerate(FileType)}


@dataclass(frozen=True)
class _Candidate:
    record: ArchiveRecord
    method: MatchMethod
    similarity: float | None = None


@dataclass
class _Snapshot:
    """Indexes built once per run and shared read-only by workers."""

    records: list[ArchiveRecord]
    identity_of: dict[int, str | None]
    by_identity: dict[str, list[ArchiveRecord]]
    by_raw: dict[str, list[ArchiveRecord]]
    manifests_by_key: dict[str, StorageManifest]
    source_identities: frozenset[str]
    checked_at: datetime


class ReconciliationEngine:
    """Compares source recordings with archive rows and storage manifests."""

    def __init__(
        self,
        codec: IdentityCodec | None = None,
        similarity_threshold: float = 0.8,
        max_workers: int = 1,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be within [0, 1]")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.codec = codec or IdentityCodec()
        self.similarity_threshold = similarity_threshold
        self.max_workers = max_workers
        self.clock = clock

    def reconcile(
        self,
        source_recordings: Iterable[RecordingMetadata],
        archive_records: Iterable[ArchiveRecord],
        storage_manifests: Iterable[StorageManifest],
    ) -> list[DiscrepancyReport]:
        """
        One report per source recording, in source order.

        Args:
            source_recordings: Recordings as the source-of-truth channel lists them
            archive_records: Snapshot of the archive store
            storage_manifests: Snapshot of files present in storage

        Returns:
            Discrepancy reports, MATCHED included
        """
        sources = list(source_recordings)
        snapshot = self._snapshot(sources, list(archive_records), list(storage_manifests))

        if self.max_workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                reports = list(pool.map(lambda s: self._reconcile_one(s, snapshot), sources))
        else:
            reports = [self._reconcile_one(s, snapshot) for s in sources]

        counts: dict[str, int] = {}
        for report in reports:
            counts[report.status.value] = counts.get(report.status.value, 0) + 1
        logger.info("reconcile.complete", sources=len(sources), **counts)
        return reports

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _identity_key(self, identifier: RecordingIdentifier | str | None) -> str | None:
        if not identifier:
            return None
        identity = self.codec.try_canonicalize(identifier)
        return identity.compact if identity else None

    def _snapshot(
        self,
        sources: list[RecordingMetadata],
        records: list[ArchiveRecord],
        manifests: list[StorageManifest],
    ) -> _Snapshot:
        identity_of: dict[int, str | None] = {}
        by_identity: dict[str, list[ArchiveRecord]] = {}
        by_raw: dict[str, list[ArchiveRecord]] = {}
        for record in records:
            key = self._identity_key(record.identifier)
            identity_of[id(record)] = key
            if key:
                by_identity.setdefault(key, []).append(record)
            else:
                by_raw.setdefault(record.identifier.strip(), []).append(record)

        manifests_by_key: dict[str, StorageManifest] = {}
        for manifest in manifests:
            key = self._identity_key(manifest.identifier) or manifest.identifier.strip()
            manifests_by_key.setdefault(key, manifest)

        source_identities = frozenset(
            key for key in (self._identity_key(s.identifier) for s in sources) if key
        )

        return _Snapshot(
            records=records,
            identity_of=identity_of,
            by_identity=by_identity,
            by_raw=by_raw,
            manifests_by_key=manifests_by_key,
            source_identities=source_identities,
            checked_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # Per-source
    # ------------------------------------------------------------------

    def _reconcile_one(self, source: RecordingMetadata, snap: _Snapshot) -> DiscrepancyReport:
        source_text = source.identifier.value if source.identifier else None
        identity = self.codec.try_canonicalize(source.identifier) if source_text else None
        evidence: dict[str, Any] = {
            "topic": source.topic,
            "start_time": to_iso8601(source.start_time),
            "external_meeting_id": source.external_meeting_id,
        }
        if source_text and identity is None:
            evidence["identifier_unparseable"] = True

        hits = self._identity_hits(identity, source_text, snap)
        if hits:
            record = hits[0]
            if len(hits) > 1:
                evidence["archive_duplicates"] = [r.record_id for r in hits]
            return self._matched(source, identity, record, self._method_for(record), snap, evidence)

        candidates, duplicates = self._group_by_recording(
            self._fallback_candidates(source, identity, snap), snap
        )
        if duplicates:
            evidence["archive_duplicates"] = duplicates
        if not candidates:
            return DiscrepancyReport(
                source_identifier=source_text,
                status=MatchStatus.MISSING_IN_ARCHIVE,
                checked_at=snap.checked_at,
                evidence=evidence,
            )

        if len(candidates) > 1:
            evidence["candidate_methods"] = {
                c.record.identifier: c.method.value for c in candidates
            }
            logger.warning(
                "reconcile.ambiguous",
                source=source_text,
                candidates=[c.record.identifier for c in candidates],
            )
            return DiscrepancyReport(
                source_identifier=source_text,
                status=MatchStatus.AMBIGUOUS_MATCH,
                checked_at=snap.checked_at,
                candidates=tuple(c.record.identifier for c in candidates),
                evidence=evidence,
            )

        only = candidates[0]
        if only.similarity is not None:
            evidence["topic_similarity"] = round(only.similarity, 4)
        return self._matched(source, identity, only.record, only.method, snap, evidence)

    def _identity_hits(
        self,
        identity: CanonicalIdentity | None,
        source_text: str | None,
        snap: _Snapshot,
    ) -> list[ArchiveRecord]:
        if identity is not None:
            return snap.by_identity.get(identity.compact, [])
        if source_text:
            return snap.by_raw.get(source_text.strip(), [])
        return []

    def _method_for(self, record: ArchiveRecord) -> MatchMethod:
        try:
            encoding = self.codec.infer_encoding(record.identifier.strip())
        except IdentityError:
            return MatchMethod.NONE
        return _METHOD_BY_ENCODING.get(encoding, MatchMethod.NONE)

    def _fallback_candidates(
        self,
        source: RecordingMetadata,
        identity: CanonicalIdentity | None,
        snap: _Snapshot,
    ) -> list[_Candidate]:
        own = identity.compact if identity else None
        candidates = []
        for record in snap.records:
            key = snap.identity_of[id(record)]
            if key is not None and key != own and key in snap.source_identities:
                continue

            if (
                source.external_meeting_id
                and record.external_meeting_id
                and source.external_meeting_id.strip() == record.external_meeting_id.strip()
            ):
                candidates.append(_Candidate(record, MatchMethod.EXTERNAL_MEETING_ID))
                continue

            if not same_utc_date(source.start_time, record.start_time):
                continue
            ratio = topic_similarity(source.topic, record.topic)
            if ratio >= self.similarity_threshold:
                candidates.append(_Candidate(record, MatchMethod.TOPIC_AND_DATE, ratio))
        return candidates

    @staticmethod
    def _group_by_recording(
        candidates: list[_Candidate], snap: _Snapshot
    ) -> tuple[list[_Candidate], list[str]]:
        """One candidate per recording; rows sharing an identity are duplicates.

        Rows whose identifier cannot be canonicalized stand on their own.
        """
        groups: dict[str, list[_Candidate]] = {}
        for candidate in candidates:
            key = snap.identity_of[id(candidate.record)] or f"row:{candidate.record.record_id}"
            groups.setdefault(key, []).append(candidate)

        duplicates = [
            c.record.record_id for group in groups.values() if len(group) > 1 for c in group
        ]
        return [group[0] for group in groups.values()], duplicates

    def _matched(
        self,
        source: RecordingMetadata,
        identity: CanonicalIdentity | None,
        record: ArchiveRecord,
        method: MatchMethod,
        snap: _Snapshot,
        evidence: dict[str, Any],
    ) -> DiscrepancyReport:
        manifest = self._manifest_for(identity, record, snap)
        declared = source.declared_file_types
        if manifest is None:
            missing = declared
            evidence["manifest"] = None
        else:
            missing = declared - manifest.file_types
            evidence["manifest"] = manifest.location or manifest.identifier
        evidence["archive_record"] = record.record_id

        missing_sorted = tuple(sorted(missing, key=_FILE_TYPE_ORDER.__getitem__))
        status = MatchStatus.PARTIAL_FILES if missing_sorted else MatchStatus.MATCHED
        return DiscrepancyReport(
            source_identifier=source.identifier.value if source.identifier else None,
            status=status,
            checked_at=snap.checked_at,
            method=method,
            archive_identifier=record.identifier,
            missing_file_types=missing_sorted,
            evidence=evidence,
        )

    def _manifest_for(
        self,
        identity: CanonicalIdentity | None,
        record: ArchiveRecord,
        snap: _Snapshot,
    ) -> StorageManifest | None:
        keys = []
        if identity is not None:
            keys.append(identity.compact)
        record_key = snap.identity_of[id(record)]
        keys.append(record_key or record.identifier.strip())
        for key in keys:
            manifest = snap.manifests_by_key.get(key)
            if manifest is not None:
                return manifest
        return None

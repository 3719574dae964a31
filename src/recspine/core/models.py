"""Domain dataclasses for recording identity, gating, classification and audit.

Observations (``RecordingIdentifier``, ``RecordingMetadata``) are transient
and built fresh per ingestion; two observations of one recording are two
objects and are never merged. ``CanonicalIdentity`` is a pure derivation
recomputed on demand. ``ArchiveRecord`` is the shape the archive store
returns and accepts.

Tags:
    rec-spine, models, dataclasses, data-model

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .enums import (
    Category,
    DecisionOutcome,
    FileType,
    IdentifierEncoding,
    MatchMethod,
    MatchStatus,
)
from .timestamps import parse_timestamp, to_iso8601

# Name-resolution placeholders that mean "nobody was identified".
UNRESOLVED_NAMES = frozenset({"", "unknown", "n/a", "na", "none", "null", "tbd", "?"})


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordingIdentifier:
    """Identifier text as a channel produced it, tagged with its encoding."""

    value: str
    encoding: IdentifierEncoding = IdentifierEncoding.UNKNOWN

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CanonicalIdentity:
    """All three encodings of one 128-bit recording instance identifier."""

    compact: str
    legacy_hex: str
    legacy_hex_dashed: str

    def encodings(self) -> list[tuple[MatchMethod, str]]:
        """Encodings in the order the duplicate gate tries them."""
        return [
            (MatchMethod.COMPACT, self.compact),
            (MatchMethod.LEGACY_HEX, self.legacy_hex),
            (MatchMethod.LEGACY_HEX_DASHED, self.legacy_hex_dashed),
        ]

    def for_encoding(self, encoding: IdentifierEncoding) -> str:
        match encoding:
            case IdentifierEncoding.COMPACT:
                return self.compact
            case IdentifierEncoding.LEGACY_HEX:
                return self.legacy_hex
            case IdentifierEncoding.LEGACY_HEX_DASHED:
                return self.legacy_hex_dashed
            case IdentifierEncoding.UNKNOWN:
                raise ValueError("UNKNOWN is not a concrete encoding")

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, str):
            return False
        return value in (self.compact, self.legacy_hex, self.legacy_hex_dashed)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileEntry:
    """One file in a recording's manifest."""

    type: FileType
    size_bytes: int | None = None
    available: bool = True


@dataclass
class RecordingMetadata:
    """
    One observation of a recording from an ingestion channel.

    Optional fields are ``None`` when the channel did not provide them; the
    classifier treats absent values as unknown rather than zero.
    """

    identifier: RecordingIdentifier | None
    external_meeting_id: str | None = None
    topic: str | None = None
    start_time: datetime | None = None
    duration_seconds: int | None = None
    aggregate_file_size_bytes: int | None = None
    participant_count: int | None = None
    host_identity: str | None = None
    files: list[FileEntry] = field(default_factory=list)

    @property
    def declared_file_types(self) -> frozenset[FileType]:
        """File types the channel says exist and are available."""
        return frozenset(f.type for f in self.files if f.available)

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        encoding: IdentifierEncoding = IdentifierEncoding.UNKNOWN,
    ) -> RecordingMetadata:
        """
        Build from the ingestion payload shape.

        Accepts camelCase keys (``externalMeetingId``) as sent by the
        channels and snake_case keys used by the manual import sheets.
        When ``aggregateFileSizeBytes`` is absent but every file carries a
        size, the sum of file sizes is used.
        """

        def pick(camel: str, snake: str) -> Any:
            if camel in payload:
                return payload[camel]
            return payload.get(snake)

        raw_identifier = payload.get("identifier")
        identifier = (
            RecordingIdentifier(str(raw_identifier), encoding)
            if raw_identifier not in (None, "")
            else None
        )

        files = [
            FileEntry(
                type=FileType.parse(str(f.get("type", "other"))),
                size_bytes=_optional_int(f.get("sizeBytes", f.get("size_bytes"))),
                available=bool(f.get("available", True)),
            )
            for f in payload.get("files") or []
        ]

        size = _optional_int(pick("aggregateFileSizeBytes", "aggregate_file_size_bytes"))
        if size is None and files and all(f.size_bytes is not None for f in files):
            size = sum(f.size_bytes for f in files)  # type: ignore[misc]

        start = pick("startTime", "start_time")
        meeting_id = pick("externalMeetingId", "external_meeting_id")

        return cls(
            identifier=identifier,
            external_meeting_id=str(meeting_id) if meeting_id not in (None, "") else None,
            topic=pick("topic", "topic"),
            start_time=parse_timestamp(start) if start else None,
            duration_seconds=_optional_int(pick("durationSeconds", "duration_seconds")),
            aggregate_file_size_bytes=size,
            participant_count=_optional_int(pick("participantCount", "participant_count")),
            host_identity=pick("hostIdentity", "host_identity"),
            files=files,
        )


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class NameResolution:
    """Coach/student attribution produced by an external resolver."""

    coach: str | None = None
    student: str | None = None
    confidence: float = 0.0
    method: str = "unknown"

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def coach_resolved(self) -> bool:
        return _is_resolved(self.coach)

    @property
    def student_resolved(self) -> bool:
        return _is_resolved(self.student)


def _is_resolved(name: str | None) -> bool:
    return name is not None and name.strip().lower() not in UNRESOLVED_NAMES


# ---------------------------------------------------------------------------
# Archive / storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ArchiveRecord:
    """A previously processed recording as the archive store holds it.

    ``identifier`` is stored verbatim, in whatever encoding the writer used
    at the time; historical rows predate the compact write format.
    """

    record_id: str
    identifier: str
    fingerprint: str | None = None
    external_meeting_id: str | None = None
    topic: str | None = None
    start_time: datetime | None = None
    category: Category | None = None
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "identifier": self.identifier,
            "fingerprint": self.fingerprint,
            "external_meeting_id": self.external_meeting_id,
            "topic": self.topic,
            "start_time": to_iso8601(self.start_time),
            "category": self.category.value if self.category else None,
            "location": self.location,
        }


@dataclass(frozen=True)
class StorageManifest:
    """Files actually present in storage for one recording."""

    identifier: str
    file_types: frozenset[FileType] = frozenset()
    location: str | None = None


# ---------------------------------------------------------------------------
# Decisions / results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessingDecision:
    """Duplicate gate verdict for one observation."""

    outcome: DecisionOutcome
    prior: ArchiveRecord | None = None
    method: MatchMethod = MatchMethod.NONE
    lookup_error: str | None = None

    @property
    def proceeds(self) -> bool:
        return self.outcome is not DecisionOutcome.SKIP_DUPLICATE

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "method": self.method.value,
            "prior": self.prior.to_dict() if self.prior else None,
            "lookup_error": self.lookup_error,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Category plus the rule that produced it."""

    category: Category
    rule_index: int
    rule_name: str
    no_show: bool = False
    missing_fields: tuple[str, ...] = ()
    refined_from: Category | None = None

    @property
    def complete(self) -> bool:
        return not self.missing_fields


@dataclass(frozen=True)
class DiscrepancyReport:
    """Reconciliation verdict for one source recording."""

    source_identifier: str | None
    status: MatchStatus
    checked_at: datetime
    method: MatchMethod = MatchMethod.NONE
    archive_identifier: str | None = None
    missing_file_types: tuple[FileType, ...] = ()
    candidates: tuple[str, ...] = ()
    evidence: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_identifier": self.source_identifier,
            "archive_identifier": self.archive_identifier,
            "status": self.status.value,
            "method": self.method.value,
            "missing_file_types": [t.value for t in self.missing_file_types],
            "candidates": list(self.candidates),
            "evidence": dict(self.evidence),
            "checked_at": to_iso8601(self.checked_at),
        }

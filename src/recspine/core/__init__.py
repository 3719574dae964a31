"""rec-spine core -- shared types, errors, settings and logging.

Architecture::

    Layer 1 -- Types & Errors
        enums.py           Closed tag sets (encodings, categories, statuses)
        errors.py          Typed error hierarchy (RecSpineError and kinds)
        models.py          Dataclasses for observations, records, reports
        protocols.py       RecordLookup, ArchiveWriter, ApprovalPolicy

    Layer 2 -- Primitives (stdlib-only)
        hashing.py         Truncated SHA-256 digests
        timestamps.py      UTC parsing/normalization, ULIDs

    Layer 3 -- Runtime
        settings.py        pydantic-settings configuration
        logging.py         structlog configuration and context binding
"""

from .enums import (
    ArchiveBackend,
    Category,
    DecisionOutcome,
    FileType,
    IdentifierEncoding,
    LookupFailurePolicy,
    MatchMethod,
    MatchStatus,
)
from .errors import (
    ClassificationIncompleteError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    IdentityError,
    InvalidConfigError,
    InvalidFingerprintInputError,
    LookupUnavailableError,
    MalformedIdentifierError,
    RecSpineError,
    UnknownEncodingError,
    error_kind,
    is_retryable,
)
from .models import (
    ArchiveRecord,
    CanonicalIdentity,
    ClassificationResult,
    DiscrepancyReport,
    FileEntry,
    NameResolution,
    ProcessingDecision,
    RecordingIdentifier,
    RecordingMetadata,
    StorageManifest,
)
from .protocols import ApprovalPolicy, ArchiveWriter, RecordLookup

__all__ = [
    # enums
    "ArchiveBackend",
    "Category",
    "DecisionOutcome",
    "FileType",
    "IdentifierEncoding",
    "LookupFailurePolicy",
    "MatchMethod",
    "MatchStatus",
    # errors
    "ClassificationIncompleteError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "IdentityError",
    "InvalidConfigError",
    "InvalidFingerprintInputError",
    "LookupUnavailableError",
    "MalformedIdentifierError",
    "RecSpineError",
    "UnknownEncodingError",
    "error_kind",
    "is_retryable",
    # models
    "ArchiveRecord",
    "CanonicalIdentity",
    "ClassificationResult",
    "DiscrepancyReport",
    "FileEntry",
    "NameResolution",
    "ProcessingDecision",
    "RecordingIdentifier",
    "RecordingMetadata",
    "StorageManifest",
    # protocols
    "ApprovalPolicy",
    "ArchiveWriter",
    "RecordLookup",
]

"""
Factory functions that build rec-spine components from settings.

Manifesto:
    Callers (ingestion workers, reconciliation jobs, tests) should not
    repeat the wiring of codec, gate, locks and stores. Each factory takes
    ``RecSpineSettings`` and returns a ready component. SQLAlchemy is only
    imported when the SQL archive backend is selected.

Features:
    - ``create_archive()`` - in-memory or SQL archive store
    - ``create_lookup()`` - archive wrapped with bounded exponential backoff
    - ``create_approval_policy()`` - auto-approve or interactive prompt
    - ``create_gate()`` / ``create_classifier()`` / ``create_reconciliation_engine()``
    - ``create_intake()`` - the full intake pipeline

Examples:
    >>> settings = RecSpineSettings(archive_backend="memory", auto_approve=True)
    >>> intake = create_intake(settings)

Tags:
    rec-spine, configuration, factory-pattern, lazy-imports, sqlalchemy
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from recspine.classify.classifier import CategoryClassifier
from recspine.core.enums import ArchiveBackend
from recspine.core.errors import InvalidConfigError
from recspine.core.logging import configure_logging
from recspine.core.protocols import ApprovalPolicy
from recspine.core.settings import RecSpineSettings, get_settings
from recspine.execution.retry import ExponentialBackoff, NoRetry, RetryStrategy
from recspine.gate.approval import AutoApprove, InteractiveApproval
from recspine.gate.duplicate import DuplicateGate
from recspine.intake import RecordingIntake
from recspine.reconcile.engine import ReconciliationEngine
from recspine.storage.memory import InMemoryArchive
from recspine.storage.retrying import RetryingRecordLookup


def setup_logging(settings: RecSpineSettings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")


def create_database_engine(settings: RecSpineSettings) -> Any:
    """Create the SQLAlchemy engine for the SQL archive.

    File-backed SQLite URLs get their parent directory created.

    Raises:
        InvalidConfigError: If ``database_url`` does not parse or names an
            unknown dialect
    """
    from sqlalchemy.engine import make_url
    from sqlalchemy.exc import ArgumentError

    from recspine.storage.orm import create_archive_engine

    try:
        url = make_url(settings.database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_archive_engine(settings.database_url, echo=settings.database_echo)
    except ArgumentError as e:
        # NoSuchModuleError (unknown dialect) is an ArgumentError too
        raise InvalidConfigError("database_url", settings.database_url) from e


def create_archive(settings: RecSpineSettings) -> Any:
    """Archive store implementing both RecordLookup and ArchiveWriter."""
    match settings.archive_backend:
        case ArchiveBackend.MEMORY:
            return InMemoryArchive()
        case ArchiveBackend.SQL:
            from recspine.storage.sql import SqlArchive

            return SqlArchive(create_database_engine(settings))


def create_lookup(settings: RecSpineSettings, archive: Any) -> RetryingRecordLookup:
    """Archive lookup with bounded retries; zero retries means a single attempt."""
    strategy: RetryStrategy
    if settings.lookup_max_retries == 0:
        strategy = NoRetry()
    else:
        strategy = ExponentialBackoff(
            max_retries=settings.lookup_max_retries,
            base_delay=settings.lookup_base_delay,
            max_delay=settings.lookup_max_delay,
        )
    return RetryingRecordLookup(archive, strategy)


def create_approval_policy(settings: RecSpineSettings) -> ApprovalPolicy:
    if settings.auto_approve:
        return AutoApprove()
    return InteractiveApproval()


def create_gate(settings: RecSpineSettings, approval: ApprovalPolicy | None = None) -> DuplicateGate:
    return DuplicateGate(
        approval or create_approval_policy(settings),
        failure_policy=settings.lookup_failure_policy,
    )


def create_classifier(settings: RecSpineSettings) -> CategoryClassifier:
    return CategoryClassifier(settings.classifier)


def create_reconciliation_engine(settings: RecSpineSettings) -> ReconciliationEngine:
    return ReconciliationEngine(
        similarity_threshold=settings.topic_similarity_threshold,
        max_workers=settings.reconcile_max_workers,
    )


def create_intake(
    settings: RecSpineSettings | None = None,
    *,
    archive: Any = None,
    approval: ApprovalPolicy | None = None,
) -> RecordingIntake:
    """Wire the intake pipeline.

    Args:
        settings: Defaults to ``get_settings()``
        archive: Existing store to share (e.g. with a reconciliation job)
        approval: Overrides the policy chosen from ``auto_approve``
    """
    settings = settings or get_settings()
    archive = archive if archive is not None else create_archive(settings)
    return RecordingIntake(
        gate=create_gate(settings, approval),
        classifier=create_classifier(settings),
        lookup=create_lookup(settings, archive),
        writer=archive,
    )

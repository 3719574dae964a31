"""Tests for settings-driven wiring."""

import pytest
import structlog
from conftest import make_metadata

from recspine.core.enums import LookupFailurePolicy
from recspine.core.errors import ConfigError, InvalidConfigError
from recspine.core.settings import RecSpineSettings
from recspine.execution.retry import NoRetry
from recspine.factory import (
    create_archive,
    create_database_engine,
    create_gate,
    create_intake,
    create_lookup,
    create_reconciliation_engine,
    setup_logging,
)
from recspine.gate.approval import AlwaysOverride, AutoApprove, InteractiveApproval
from recspine.storage.memory import InMemoryArchive
from recspine.storage.retrying import RetryingRecordLookup
from recspine.storage.sql import SqlArchive


def settings(**overrides) -> RecSpineSettings:
    return RecSpineSettings(_env_file=None, **overrides)


class TestArchiveFactories:
    def test_memory_backend(self):
        assert isinstance(create_archive(settings(archive_backend="memory")), InMemoryArchive)

    def test_sql_backend_in_memory(self):
        archive = create_archive(settings(archive_backend="sql", database_url="sqlite://"))
        try:
            assert isinstance(archive, SqlArchive)
            assert archive.snapshot() == []
        finally:
            archive.engine.dispose()

    def test_sqlite_file_parent_created(self, tmp_path):
        target = tmp_path / "nested" / "archive.db"
        engine = create_database_engine(settings(database_url=f"sqlite:///{target}"))
        try:
            assert target.parent.is_dir()
        finally:
            engine.dispose()

    def test_lookup_uses_retry_settings(self):
        config = settings(lookup_max_retries=5, lookup_base_delay=0.25, lookup_max_delay=2.0)
        lookup = create_lookup(config, InMemoryArchive())
        assert isinstance(lookup, RetryingRecordLookup)
        assert lookup.strategy.max_retries == 5
        assert lookup.strategy.base_delay == 0.25
        assert lookup.strategy.max_delay == 2.0

    def test_zero_retries_means_single_attempt(self):
        lookup = create_lookup(settings(lookup_max_retries=0), InMemoryArchive())
        assert isinstance(lookup.strategy, NoRetry)

    @pytest.mark.parametrize("url", ["not a database url", "nosuchdialect://host/db"])
    def test_bad_database_url(self, url):
        with pytest.raises(InvalidConfigError) as exc_info:
            create_database_engine(settings(database_url=url))

        assert isinstance(exc_info.value, ConfigError)
        assert exc_info.value.context.metadata["config_key"] == "database_url"


class TestGateFactories:
    def test_auto_approve(self):
        assert isinstance(create_gate(settings(auto_approve=True)).approval, AutoApprove)

    def test_interactive_by_default(self):
        assert isinstance(create_gate(settings()).approval, InteractiveApproval)

    def test_explicit_policy_wins(self):
        gate = create_gate(settings(auto_approve=True), AlwaysOverride())
        assert isinstance(gate.approval, AlwaysOverride)

    def test_failure_policy(self):
        gate = create_gate(settings(lookup_failure_policy="fail-open"))
        assert gate.failure_policy is LookupFailurePolicy.FAIL_OPEN

    def test_reconciliation_engine(self):
        config = settings(topic_similarity_threshold=0.6, reconcile_max_workers=3)
        engine = create_reconciliation_engine(config)
        assert engine.similarity_threshold == 0.6
        assert engine.max_workers == 3


class TestCreateIntake:
    def test_end_to_end_memory(self):
        archive = InMemoryArchive()
        intake = create_intake(settings(auto_approve=True), archive=archive)

        first = intake.process(make_metadata())
        second = intake.process(make_metadata())

        assert first.decision.proceeds
        assert not second.decision.proceeds
        assert len(archive) == 1

    def test_classifier_thresholds_from_settings(self):
        config = settings(archive_backend="memory", classifier={"trivial_topic_markers": ["sync"]})
        intake = create_intake(config)
        assert intake.classifier.thresholds.trivial_topic_markers == ["sync"]


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def reset(self):
        yield
        structlog.reset_defaults()

    @pytest.mark.parametrize("log_format", ["json", "console"])
    def test_configures_structlog(self, log_format):
        setup_logging(settings(log_level="DEBUG", log_format=log_format))
        assert structlog.is_configured()

"""Tests for recspine.core.settings."""

import pytest
from pydantic import ValidationError

from recspine.core.enums import ArchiveBackend, LookupFailurePolicy
from recspine.core.settings import (
    MIB,
    ClassifierThresholds,
    RecSpineSettings,
    get_settings,
)


class TestClassifierThresholds:
    def test_defaults(self):
        t = ClassifierThresholds()
        assert t.small_file_bytes == MIB
        assert t.short_duration_seconds == 60
        assert t.medium_duration_seconds == 900
        assert t.medium_size_bytes == 50 * MIB
        assert t.no_show_wait_seconds == 1800
        assert t.coach_confidence_min == 0.7
        assert t.attribution_confidence_min == 0.5
        assert t.substantial_size_bytes == 10 * MIB

    def test_medium_must_not_undercut_small(self):
        with pytest.raises(ValidationError):
            ClassifierThresholds(small_file_bytes=10 * MIB, medium_size_bytes=MIB)

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ClassifierThresholds(coach_confidence_min=1.5)

    def test_host_allow_lists_case_insensitive(self):
        t = ClassifierThresholds(admin_hosts=["Ops@Domain"], known_coach_hosts=["coach.jane@domain"])
        assert t.is_admin_host(" ops@domain ")
        assert t.is_known_coach_host("COACH.JANE@DOMAIN")
        assert not t.is_admin_host(None)


class TestRecSpineSettings:
    def test_defaults(self):
        settings = RecSpineSettings(_env_file=None)
        assert settings.lookup_failure_policy is LookupFailurePolicy.FAIL_CLOSED
        assert settings.auto_approve is False
        assert settings.archive_backend is ArchiveBackend.SQL
        assert settings.topic_similarity_threshold == 0.8

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RECSPINE_LOOKUP_FAILURE_POLICY", "fail-open")
        monkeypatch.setenv("RECSPINE_AUTO_APPROVE", "true")
        monkeypatch.setenv("RECSPINE_CLASSIFIER__SMALL_FILE_BYTES", "2097152")
        settings = RecSpineSettings(_env_file=None)
        assert settings.lookup_failure_policy is LookupFailurePolicy.FAIL_OPEN
        assert settings.auto_approve is True
        assert settings.classifier.small_file_bytes == 2 * MIB

    def test_invalid_env_rejected(self, monkeypatch):
        monkeypatch.setenv("RECSPINE_LOOKUP_MAX_RETRIES", "-1")
        with pytest.raises(ValidationError):
            RecSpineSettings(_env_file=None)

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

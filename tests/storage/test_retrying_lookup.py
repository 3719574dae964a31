"""Tests for the retrying lookup wrapper."""

import pytest
from conftest import COMPACT_ID, make_record
from structlog.testing import capture_logs

from recspine.core.errors import LookupUnavailableError
from recspine.execution.retry import ExponentialBackoff
from recspine.storage.retrying import RetryingRecordLookup


class FlakyLookup:
    """Fails ``failures`` times with ``error`` before answering."""

    def __init__(self, failures: int, error: Exception | None = None):
        self.failures = failures
        self.error = error or ConnectionError("reset by peer")
        self.calls = 0

    def find_by_identity(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return make_record(identifier=value)

    def find_by_fingerprint(self, fingerprint):
        return self.find_by_identity(COMPACT_ID)


def wrap(inner, retries=3):
    sleeps = []
    lookup = RetryingRecordLookup(
        inner,
        strategy=ExponentialBackoff(max_retries=retries, base_delay=0.1, jitter=False),
        sleep=sleeps.append,
    )
    return lookup, sleeps


class TestRetryingRecordLookup:
    def test_recovers_from_transient_failures(self):
        inner = FlakyLookup(failures=2)
        lookup, sleeps = wrap(inner)
        with capture_logs() as logs:
            record = lookup.find_by_identity(COMPACT_ID)

        assert record.identifier == COMPACT_ID
        assert inner.calls == 3
        assert sleeps == [0.1, 0.2]
        assert [e["event"] for e in logs].count("lookup.retry") == 2

    def test_exhaustion_reports_attempts(self):
        inner = FlakyLookup(failures=10)
        lookup, _ = wrap(inner, retries=2)
        with pytest.raises(LookupUnavailableError) as exc_info:
            lookup.find_by_identity(COMPACT_ID)

        error = exc_info.value
        assert inner.calls == 3
        assert error.context.attempts == 3
        assert error.context.operation == "find_by_identity"
        assert error.retryable
        assert isinstance(error.cause, ConnectionError)

    def test_fatal_error_not_retried(self):
        inner = FlakyLookup(failures=1, error=ValueError("bad query"))
        lookup, sleeps = wrap(inner)
        with pytest.raises(LookupUnavailableError) as exc_info:
            lookup.find_by_identity(COMPACT_ID)

        assert inner.calls == 1
        assert sleeps == []
        assert not exc_info.value.retryable

    def test_lookup_unavailable_is_retried(self):
        inner = FlakyLookup(failures=1, error=LookupUnavailableError("db down"))
        lookup, _ = wrap(inner)
        assert lookup.find_by_fingerprint("fp0") is not None
        assert inner.calls == 2

    def test_default_strategy_is_bounded(self):
        lookup = RetryingRecordLookup(FlakyLookup(failures=0))
        assert lookup.strategy.max_retries == 3

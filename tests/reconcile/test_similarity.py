"""Tests for fallback matching signals."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from recspine.reconcile.similarity import normalize_topic, same_utc_date, topic_similarity


class TestTopicSimilarity:
    def test_normalization(self):
        assert normalize_topic("  Weekly   COACHING\t- Alex ") == "weekly coaching - alex"
        assert normalize_topic(None) == ""

    def test_identical_after_normalization(self):
        assert topic_similarity("Weekly Coaching", "weekly  coaching") == 1.0

    @pytest.mark.parametrize("a, b", [("", "Topic"), ("Topic", None), ("   ", "   ")])
    def test_blank_is_zero(self, a, b):
        assert topic_similarity(a, b) == 0.0

    def test_close_topics_score_high(self):
        assert topic_similarity("Weekly Coaching - Alex", "Weekly Coaching - Alexa") > 0.9

    def test_unrelated_topics_score_low(self):
        assert topic_similarity("Weekly Coaching - Alex", "Tax filing 2024") < 0.5

    def test_symmetric_for_equal_length(self):
        assert topic_similarity("abcd", "abce") == topic_similarity("abce", "abcd")


class TestSameUtcDate:
    def test_same_day(self):
        a = datetime(2025, 3, 4, 1, 0, tzinfo=UTC)
        b = datetime(2025, 3, 4, 23, 0, tzinfo=UTC)
        assert same_utc_date(a, b)

    def test_offsets_compared_in_utc(self):
        # 2025-03-04 20:00 at -05:00 is 2025-03-05 01:00 UTC
        local = datetime(2025, 3, 4, 20, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert not same_utc_date(local, datetime(2025, 3, 4, 12, 0, tzinfo=UTC))
        assert same_utc_date(local, datetime(2025, 3, 5, 0, 30, tzinfo=UTC))

    def test_missing_value(self):
        assert not same_utc_date(None, datetime(2025, 3, 4, tzinfo=UTC))

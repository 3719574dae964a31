"""Tests for hashing and timestamp helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from recspine.core.hashing import FINGERPRINT_LENGTH, compute_hash
from recspine.core.timestamps import (
    generate_ulid,
    normalize_timestamp,
    parse_timestamp,
    to_iso8601,
)


class TestComputeHash:
    def test_deterministic(self):
        assert compute_hash("a", 1) == compute_hash("a", 1)

    def test_length(self):
        assert len(compute_hash("a")) == 32
        assert len(compute_hash("a", length=FINGERPRINT_LENGTH)) == 16

    def test_prefix_of_full_digest(self):
        assert compute_hash("a", "b", length=64).startswith(compute_hash("a", "b", length=16))

    def test_values_are_separated(self):
        assert compute_hash("ab", "c") != compute_hash("a", "bc")

    @pytest.mark.parametrize("length", [0, 65])
    def test_length_bounds(self, length):
        with pytest.raises(ValueError):
            compute_hash("a", length=length)


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2025-03-04T17:00:00Z") == datetime(2025, 3, 4, 17, tzinfo=UTC)

    def test_offset_converted_to_utc(self):
        parsed = parse_timestamp("2025-03-04T12:00:00-05:00")
        assert parsed == datetime(2025, 3, 4, 17, tzinfo=UTC)
        assert parsed.tzinfo == UTC

    def test_naive_taken_as_utc(self):
        assert parse_timestamp(datetime(2025, 3, 4, 17)) == datetime(2025, 3, 4, 17, tzinfo=UTC)

    def test_aware_datetime_converted(self):
        tz = timezone(timedelta(hours=2))
        assert parse_timestamp(datetime(2025, 3, 4, 19, tzinfo=tz)).hour == 17

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp("  ")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    def test_wrong_type_rejected(self):
        with pytest.raises(TypeError):
            parse_timestamp(1741107600)  # type: ignore[arg-type]


class TestNormalizeTimestamp:
    def test_spellings_agree(self):
        spellings = [
            "2025-03-04T17:00:00Z",
            "2025-03-04T17:00:00+00:00",
            "2025-03-04T12:00:00-05:00",
            "2025-03-04T17:00:00",
        ]
        assert {normalize_timestamp(s) for s in spellings} == {"2025-03-04T17:00:00Z"}

    def test_to_iso8601_none(self):
        assert to_iso8601(None) is None


class TestUlid:
    def test_shape(self):
        ulid = generate_ulid()
        assert len(ulid) == 26

    def test_unique(self):
        assert len({generate_ulid() for _ in range(200)}) == 200

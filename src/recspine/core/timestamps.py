"""
ULID generation and UTC timestamp helpers (stdlib-only).

Ingestion channels disagree on how they write start times: the push channel
sends ``2025-03-04T17:00:00Z``, bulk pulls send ``+00:00`` offsets, and
manual imports sometimes carry naive local strings. Anything that keys on a
start time (fingerprints, date equality during reconciliation) goes through
``parse_timestamp`` so those spellings agree.

Features:
    - **utc_now():** Timezone-aware UTC datetime
    - **parse_timestamp():** ISO-8601 string or datetime -> aware UTC datetime
    - **normalize_timestamp():** Canonical ``YYYY-MM-DDTHH:MM:SSZ`` text
    - **generate_ulid():** Time-sortable archive record ids

Tags:
    timestamps, ulid, utc, datetime, rec-spine, stdlib-only

STDLIB ONLY - NO PYDANTIC.
"""

import random
import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def parse_timestamp(value: "str | datetime") -> datetime:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Naive values are taken to be UTC already, which is what the platform's
    bulk export writes.

    Raises:
        ValueError: If the string is not ISO-8601
        TypeError: If value is neither a string nor a datetime
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def normalize_timestamp(value: "str | datetime") -> str:
    """Canonical second-precision UTC text, e.g. ``2025-03-04T17:00:00Z``."""
    return parse_timestamp(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_iso8601(dt: datetime | None) -> str | None:
    """Convert datetime to ISO 8601 string."""
    if dt is None:
        return None
    return dt.isoformat()


def generate_ulid() -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters, base32 encoded, time-sortable.
    """
    # 48-bit millisecond time -> 10 chars
    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = _encode_base32(timestamp_ms, 10)

    # 80 random bits -> 16 chars
    random_part = "".join(random.choices(_ENCODING, k=16))

    return timestamp_chars + random_part


# Crockford base32
_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ENCODING_LEN = len(_ENCODING)


def _encode_base32(value: int, length: int) -> str:
    """Encode integer to base32 string of fixed length."""
    result = []
    for _ in range(length):
        result.append(_ENCODING[value % _ENCODING_LEN])
        value //= _ENCODING_LEN
    return "".join(reversed(result))

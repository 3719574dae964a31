"""
Deterministic hashing utilities for recording deduplication.

Provides the stable, reproducible hash used to fingerprint recordings.
The fingerprint is the dedup key that survives the platform re-issuing an
instance identifier when the same scheduled meeting is recorded again.

Manifesto:
    - **Deterministic:** Same inputs always produce the same hash
    - **Order-dependent:** ``(a, b)`` and ``(b, a)`` differ
    - **Type-agnostic:** Values are converted to strings
    - **Fixed length:** One prefix length, applied everywhere a hash is
      compared, so stored and freshly computed values always line up

Examples:
    >>> h1 = compute_hash("84123456789", "2025-03-04T17:00:00Z", length=16)
    >>> h2 = compute_hash("84123456789", "2025-03-04T17:00:00Z", length=16)
    >>> h1 == h2
    True
    >>> len(h1)
    16

Tags:
    hashing, deduplication, idempotency, fingerprint, rec-spine
"""

import hashlib
from typing import Any

# Hex characters kept from the SHA-256 digest for recording fingerprints.
FINGERPRINT_LENGTH = 16


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Joins the string form of every value with ``|`` and returns the first
    ``length`` hex characters of the SHA-256 digest.

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits)

    Returns:
        Hex string of specified length
    """
    if not 1 <= length <= 64:
        raise ValueError(f"length must be between 1 and 64, got {length}")
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]

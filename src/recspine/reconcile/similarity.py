"""Fallback matching signals: topic similarity and same-day start times."""

from __future__ import annotations

from datetime import datetime
from difflib import SequenceMatcher

from recspine.core.timestamps import parse_timestamp


def normalize_topic(topic: str | None) -> str:
    return " ".join((topic or "").lower().split())


def topic_similarity(a: str | None, b: str | None) -> float:
    """Ratio in [0, 1]; 0.0 when either topic is blank."""
    left, right = normalize_topic(a), normalize_topic(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def same_utc_date(a: datetime | None, b: datetime | None) -> bool:
    """True when both start times fall on the same UTC calendar day."""
    if a is None or b is None:
        return False
    return parse_timestamp(a).date() == parse_timestamp(b).date()

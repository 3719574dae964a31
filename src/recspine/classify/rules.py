"""Ordered category rule table.

Architecture::

    RULES (first match wins, order is contractual)
    │
    ├── 1 trivial_topic          topic has a test/throwaway marker  -> Trivial
    ├── 2 tiny_recording         small AND (short OR nobody joined) -> Trivial
    ├── 3 short_unattributed     medium-short, medium-small AND
    │                            (unattributed OR admin host)       -> Trivial
    ├── 4 no_show                attributed 1:1 that sat waiting in an
    │                            ad-hoc room or a coach's room      -> MISC (no-show)
    ├── 5 attributed_substantial both attributed AND substantial    -> Coaching
    ├── 6 student_unresolved     no student                         -> MISC
    └── 7 default                                                   -> Coaching

Each predicate reads its inputs through ``RuleInputs``, which records every
absent field it is asked for and answers "unknown" comparisons with False.
A rule whose inputs are missing therefore cannot fire and evaluation falls
through to the next, more conservative rule.

The no-show rule shares preconditions with rule 5 and must stay ahead of it:
no-shows are filed and notified differently.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import lru_cache

from recspine.core.enums import Category
from recspine.core.models import NameResolution, RecordingMetadata
from recspine.core.settings import ClassifierThresholds


@dataclass
class RuleInputs:
    """Metadata, attribution and thresholds for one classification."""

    metadata: RecordingMetadata
    names: NameResolution | None
    thresholds: ClassifierThresholds
    missing: list[str] = field(default_factory=list)

    def _note(self, name: str) -> None:
        if name not in self.missing:
            self.missing.append(name)

    def _get(self, name: str):
        value = getattr(self.metadata, name)
        if value is None:
            self._note(name)
        return value

    @property
    def topic(self) -> str | None:
        return self._get("topic")

    @property
    def size(self) -> int | None:
        return self._get("aggregate_file_size_bytes")

    @property
    def duration(self) -> int | None:
        return self._get("duration_seconds")

    @property
    def participants(self) -> int | None:
        return self._get("participant_count")

    @property
    def host(self) -> str | None:
        return self._get("host_identity")

    @property
    def attribution(self) -> NameResolution:
        if self.names is None:
            self._note("name_resolution")
            return NameResolution()
        return self.names


def below(value: int | None, threshold: int) -> bool:
    return value is not None and value < threshold


def above(value: int | None, threshold: int) -> bool:
    return value is not None and value > threshold


def equals(value: int | None, expected: int) -> bool:
    return value is not None and value == expected


@lru_cache(maxsize=256)
def _word_pattern(marker: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(marker.lower())}(?![a-z0-9])")


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def has_word_marker(text: str | None, markers: list[str]) -> bool:
    """Case-insensitive whole-word match ("test" hits "Mic Test", not "Contest")."""
    if not text:
        return False
    normalized = _normalize(text)
    return any(_word_pattern(_normalize(m)).search(normalized) for m in markers if m.strip())


def has_marker(text: str | None, markers: list[str]) -> bool:
    """Case-insensitive substring match with whitespace collapsed."""
    if not text:
        return False
    normalized = _normalize(text)
    return any(_normalize(m) in normalized for m in markers if m.strip())


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _trivial_topic(r: RuleInputs) -> bool:
    return has_word_marker(r.topic, r.thresholds.trivial_topic_markers)


def _tiny_recording(r: RuleInputs) -> bool:
    t = r.thresholds
    return below(r.size, t.small_file_bytes) and (
        below(r.duration, t.short_duration_seconds) or equals(r.participants, 0)
    )


def _short_unattributed(r: RuleInputs) -> bool:
    t = r.thresholds
    if not (below(r.duration, t.medium_duration_seconds) and below(r.size, t.medium_size_bytes)):
        return False
    names = r.attribution
    return not names.student_resolved or not names.coach_resolved or t.is_admin_host(r.host)


def _no_show(r: RuleInputs) -> bool:
    t = r.thresholds
    names = r.attribution
    return (
        names.coach_resolved
        and names.confidence >= t.coach_confidence_min
        and names.student_resolved
        and equals(r.participants, 1)
        and above(r.duration, t.no_show_wait_seconds)
        and (has_marker(r.topic, t.ad_hoc_room_markers) or t.is_known_coach_host(r.host))
    )


def _attributed_substantial(r: RuleInputs) -> bool:
    t = r.thresholds
    names = r.attribution
    return (
        names.coach_resolved
        and names.student_resolved
        and names.confidence >= t.attribution_confidence_min
        and above(r.size, t.substantial_size_bytes)
    )


def _student_unresolved(r: RuleInputs) -> bool:
    return not r.attribution.student_resolved


def _always(r: RuleInputs) -> bool:
    return True


@dataclass(frozen=True)
class Rule:
    """One row of the rule table."""

    index: int
    name: str
    category: Category
    predicate: Callable[[RuleInputs], bool]
    no_show: bool = False


RULES: tuple[Rule, ...] = (
    Rule(1, "trivial_topic", Category.TRIVIAL, _trivial_topic),
    Rule(2, "tiny_recording", Category.TRIVIAL, _tiny_recording),
    Rule(3, "short_unattributed", Category.TRIVIAL, _short_unattributed),
    Rule(4, "no_show", Category.MISC, _no_show, no_show=True),
    Rule(5, "attributed_substantial", Category.COACHING, _attributed_substantial),
    Rule(6, "student_unresolved", Category.MISC, _student_unresolved),
    Rule(7, "default", Category.COACHING, _always),
)

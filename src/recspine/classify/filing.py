"""Category -> storage path segment and notification flag for the filer."""

from __future__ import annotations

from dataclasses import dataclass

from recspine.core.enums import Category
from recspine.core.models import ClassificationResult


@dataclass(frozen=True)
class FilingHint:
    path_segment: str
    suppress_notifications: bool


def filing_hint(result: ClassificationResult) -> FilingHint:
    """Map a classification onto the folder segment and notification policy.

    Trivial recordings and no-shows are filed quietly.
    """
    match result.category:
        case Category.COACHING:
            return FilingHint("Coaching", False)
        case Category.GAME_PLAN:
            return FilingHint("Coaching_GamePlan", False)
        case Category.SAT:
            return FilingHint("SAT", False)
        case Category.MISC:
            if result.no_show:
                return FilingHint("NO_SHOW", True)
            return FilingHint("MISC", False)
        case Category.TRIVIAL:
            return FilingHint("TRIVIAL", True)
    raise ValueError(f"Unhandled category: {result.category!r}")

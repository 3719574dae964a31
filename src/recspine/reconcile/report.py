"""Append-only JSON-lines log of reconciliation reports for human review."""

from __future__ import annotations

import json
import threading
from collections import Counter
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from recspine.core.enums import MatchStatus
from recspine.core.logging import get_logger
from recspine.core.models import DiscrepancyReport

logger = get_logger(__name__)


def summarize(reports: Iterable[DiscrepancyReport]) -> dict[str, int]:
    """Count reports per status; every status is present, zero or not."""
    counts = Counter(r.status for r in reports)
    return {status.value: counts.get(status, 0) for status in MatchStatus}


class ReconciliationLog:
    """
    Appends reports to a ``.jsonl`` file, one flat object per line.

    Existing lines are never rewritten; re-running a reconciliation adds a
    new batch with a later ``checked_at``.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, reports: Iterable[DiscrepancyReport]) -> int:
        """Write reports; returns how many lines were added."""
        lines = [json.dumps(r.to_dict(), sort_keys=True, default=str) for r in reports]
        if not lines:
            return 0
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write("\n".join(lines) + "\n")
        logger.info("reconcile.log_appended", path=str(self.path), rows=len(lines))
        return len(lines)

    def read(self) -> Iterator[dict[str, Any]]:
        if not self.path.exists():
            return
        with self.path.open(encoding="utf-8") as fh:
            for line in fh:
                if line.strip():
                    yield json.loads(line)

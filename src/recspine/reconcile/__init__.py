"""Offline, read-only reconciliation of source, archive and storage views."""

from recspine.reconcile.engine import ReconciliationEngine
from recspine.reconcile.report import ReconciliationLog, summarize
from recspine.reconcile.similarity import same_utc_date, topic_similarity

__all__ = [
    "ReconciliationEngine",
    "ReconciliationLog",
    "summarize",
    "same_utc_date",
    "topic_similarity",
]

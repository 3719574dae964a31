"""Retry decorator for any ``RecordLookup``.

Transient failures (``is_retryable``) are retried with the injected
strategy. Whatever failure is left at the end, retryable or fatal, reaches
the caller as ``LookupUnavailableError`` carrying the attempt count and the
last cause, so the duplicate gate can apply its failure policy.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from recspine.core.errors import LookupUnavailableError, is_retryable
from recspine.core.logging import get_logger
from recspine.core.models import ArchiveRecord
from recspine.core.protocols import RecordLookup
from recspine.execution.retry import ExponentialBackoff, RetryContext, RetryStrategy

logger = get_logger(__name__)

T = TypeVar("T")


class RetryingRecordLookup:
    """Wraps a lookup with bounded, backed-off retries."""

    def __init__(
        self,
        inner: RecordLookup,
        strategy: RetryStrategy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.inner = inner
        self.strategy = strategy or ExponentialBackoff(max_retries=3, base_delay=0.5, max_delay=8.0)
        self.sleep = sleep

    def find_by_identity(self, value: str) -> ArchiveRecord | None:
        return self._call("find_by_identity", self.inner.find_by_identity, value)

    def find_by_fingerprint(self, fingerprint: str) -> ArchiveRecord | None:
        return self._call("find_by_fingerprint", self.inner.find_by_fingerprint, fingerprint)

    def _call(self, operation: str, func: Callable[[str], T], key: str) -> T:
        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            logger.warning(
                "lookup.retry",
                operation=operation,
                attempt=attempt,
                delay=round(delay, 3),
                error=str(error),
            )

        ctx = RetryContext(self.strategy, on_retry=on_retry, sleep=self.sleep)
        try:
            return ctx.run(func, key)
        except Exception as e:
            logger.error(
                "lookup.failed",
                operation=operation,
                attempts=ctx.attempts,
                error=str(e),
            )
            raise LookupUnavailableError(
                f"{operation} failed after {ctx.attempts} attempt(s): {e}",
                retryable=is_retryable(e),
                cause=e,
            ).with_context(operation=operation, attempts=ctx.attempts) from e

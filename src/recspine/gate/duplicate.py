"""
Duplicate gate: has this exact recording instance been processed before?

Manifesto:
    Downloads, transcript analysis and filing are expensive and not safely
    repeatable, so every observation passes this gate first. The archive
    holds identifiers in whichever encoding was current when a row was
    written, so a single exact lookup is not enough.

Architecture:
    ::

        evaluate(candidate, fingerprint, lookup)
          1. find_by_identity(compact)           ─┐
          2. find_by_identity(legacy-hex)          │ first hit wins
             find_by_identity(legacy-hex-dashed)   │
          3. find_by_fingerprint(fingerprint)    ─┘
          4. hit  -> approval.decide() -> SKIP_DUPLICATE | PROCEED_OVERRIDE
          5. miss -> PROCEED_NEW

        lookup raises LookupUnavailableError
          FAIL_CLOSED -> re-raise (duplication undetermined)
          FAIL_OPEN   -> PROCEED_NEW with lookup_error set, warning logged

Guardrails:
    The gate performs lookups only. Writing the archive row is the
    caller's job, under the identity lock (see ``recspine.intake``).

Tags:
    deduplication, gate, idempotency, approval, rec-spine
"""

from __future__ import annotations

from recspine.core.enums import DecisionOutcome, LookupFailurePolicy, MatchMethod
from recspine.core.errors import LookupUnavailableError, RecSpineError
from recspine.core.logging import get_logger
from recspine.core.models import ArchiveRecord, CanonicalIdentity, ProcessingDecision
from recspine.core.protocols import ApprovalPolicy, RecordLookup

logger = get_logger(__name__)


class DuplicateGate:
    """Resolves skip-vs-proceed for one observation."""

    def __init__(
        self,
        approval: ApprovalPolicy,
        failure_policy: LookupFailurePolicy = LookupFailurePolicy.FAIL_CLOSED,
    ):
        self.approval = approval
        self.failure_policy = failure_policy

    def evaluate(
        self,
        candidate: CanonicalIdentity | None,
        fingerprint: str | None,
        lookup: RecordLookup,
    ) -> ProcessingDecision:
        """
        Decide whether an observation is new, a skipped duplicate or an
        approved reprocess.

        Args:
            candidate: Canonical identity, or None when the identifier was
                missing or malformed
            fingerprint: Fingerprint, or None when it could not be derived
            lookup: Read-only archive view

        Raises:
            LookupUnavailableError: The archive could not be consulted and
                the failure policy is FAIL_CLOSED
        """
        try:
            prior, method = self._find_prior(candidate, fingerprint, lookup)
        except LookupUnavailableError as e:
            return self._on_lookup_failure(e, candidate, fingerprint)

        if prior is None:
            logger.debug(
                "duplicate_gate.miss",
                identity=candidate.compact if candidate else None,
                fingerprint=fingerprint,
            )
            return ProcessingDecision(outcome=DecisionOutcome.PROCEED_NEW)

        logger.info(
            "duplicate_gate.match",
            method=method.value,
            prior_record=prior.record_id,
            prior_identifier=prior.identifier,
        )
        outcome = self.approval.decide(candidate, prior, method)
        if outcome not in (DecisionOutcome.SKIP_DUPLICATE, DecisionOutcome.PROCEED_OVERRIDE):
            raise RecSpineError(
                f"Approval policy returned {outcome!r} for a matched recording"
            ).with_context(operation="approval.decide")
        return ProcessingDecision(outcome=outcome, prior=prior, method=method)

    def _find_prior(
        self,
        candidate: CanonicalIdentity | None,
        fingerprint: str | None,
        lookup: RecordLookup,
    ) -> tuple[ArchiveRecord | None, MatchMethod]:
        if candidate is not None:
            for method, value in candidate.encodings():
                prior = lookup.find_by_identity(value)
                if prior is not None:
                    return prior, method

        if fingerprint:
            prior = lookup.find_by_fingerprint(fingerprint)
            if prior is not None:
                return prior, MatchMethod.FINGERPRINT

        return None, MatchMethod.NONE

    def _on_lookup_failure(
        self,
        error: LookupUnavailableError,
        candidate: CanonicalIdentity | None,
        fingerprint: str | None,
    ) -> ProcessingDecision:
        match self.failure_policy:
            case LookupFailurePolicy.FAIL_CLOSED:
                logger.error(
                    "duplicate_gate.undetermined",
                    identity=candidate.compact if candidate else None,
                    fingerprint=fingerprint,
                    error=error.message,
                )
                raise error
            case LookupFailurePolicy.FAIL_OPEN:
                logger.warning(
                    "duplicate_gate.fail_open",
                    identity=candidate.compact if candidate else None,
                    fingerprint=fingerprint,
                    error=error.message,
                )
                return ProcessingDecision(
                    outcome=DecisionOutcome.PROCEED_NEW,
                    lookup_error=error.message,
                )

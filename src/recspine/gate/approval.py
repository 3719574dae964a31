"""Approval policies for observations that match a prior archive record.

Interactive and automated runs share the ``ApprovalPolicy`` contract, so the
gate never knows whether a human was asked.

- ``AutoApprove``: skip every duplicate (unattended bulk runs)
- ``AlwaysOverride``: reprocess every duplicate (forced re-runs)
- ``InteractiveApproval``: show the prior record and ask
"""

from __future__ import annotations

import threading
from typing import TextIO

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from recspine.core.enums import DecisionOutcome, MatchMethod
from recspine.core.logging import get_logger
from recspine.core.models import ArchiveRecord, CanonicalIdentity

logger = get_logger(__name__)


class AutoApprove:
    """Skip every duplicate without asking."""

    def decide(
        self,
        candidate: CanonicalIdentity | None,
        prior: ArchiveRecord,
        method: MatchMethod,
    ) -> DecisionOutcome:
        logger.info(
            "approval.auto_skip",
            prior_record=prior.record_id,
            method=method.value,
        )
        return DecisionOutcome.SKIP_DUPLICATE


class AlwaysOverride:
    """Reprocess every duplicate without asking."""

    def decide(
        self,
        candidate: CanonicalIdentity | None,
        prior: ArchiveRecord,
        method: MatchMethod,
    ) -> DecisionOutcome:
        logger.info(
            "approval.auto_override",
            prior_record=prior.record_id,
            method=method.value,
        )
        return DecisionOutcome.PROCEED_OVERRIDE


class InteractiveApproval:
    """Ask an operator whether to skip a recording that already exists.

    Blocks until answered. Only the recording under decision waits: the
    intake holds that recording's identity lock and nothing else. Prompts
    from concurrent recordings are serialized so they do not interleave on
    the terminal.
    """

    def __init__(
        self,
        console: Console | None = None,
        stream: TextIO | None = None,
        default_skip: bool = True,
    ):
        self.console = console or Console()
        self.stream = stream
        self.default_skip = default_skip
        self._prompt_lock = threading.Lock()

    def decide(
        self,
        candidate: CanonicalIdentity | None,
        prior: ArchiveRecord,
        method: MatchMethod,
    ) -> DecisionOutcome:
        with self._prompt_lock:
            self.console.print(self._render(candidate, prior, method))
            skip = Confirm.ask(
                "This recording was already processed. Skip it?",
                console=self.console,
                default=self.default_skip,
                stream=self.stream,
            )

        outcome = DecisionOutcome.SKIP_DUPLICATE if skip else DecisionOutcome.PROCEED_OVERRIDE
        logger.info(
            "approval.operator_decision",
            prior_record=prior.record_id,
            method=method.value,
            outcome=outcome.value,
        )
        return outcome

    @staticmethod
    def _render(
        candidate: CanonicalIdentity | None,
        prior: ArchiveRecord,
        method: MatchMethod,
    ) -> Table:
        table = Table(title="Existing recording", show_header=False)
        table.add_column("field", style="bold")
        table.add_column("value")
        table.add_row("matched by", method.value)
        if candidate is not None:
            table.add_row("incoming", candidate.compact)
        for key, value in prior.to_dict().items():
            table.add_row(key, "" if value is None else str(value))
        return table

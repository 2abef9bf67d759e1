"""External asset lifecycle engine: submit, check, withdraw, observe."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .events import StatusEvents
from .outcomes import SubmissionFailed, SubmissionFailureReason
from .ports.platform import SubmissionRequest
from .resolution import judge

if TYPE_CHECKING:
    from collections.abc import Callable

    from .events import StatusChangeHandler
    from .model import AssetKind, AssetStatus, EvidenceBundle
    from .outcomes import SubmissionOutcome, WithdrawalOutcome
    from .ports.platform import (
        AssetSubmitter,
        AssetWithdrawer,
        EvidenceCollector,
        SessionContext,
    )
    from .resolution import ResolutionRule

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusReport:
    asset_id: str
    kind: AssetKind
    status: AssetStatus
    rule: ResolutionRule
    name: str | None
    evidence: EvidenceBundle


class AssetLifecycle:
    """Facade over the evidence collector, resolver and both negotiators."""

    def __init__(
        self,
        *,
        collector: EvidenceCollector,
        submitter: AssetSubmitter,
        withdrawer: AssetWithdrawer,
        events: StatusEvents | None = None,
    ) -> None:
        self._collector = collector
        self._submitter = submitter
        self._withdrawer = withdrawer
        self.events = events or StatusEvents()

    def on_status_changed(self, handler: StatusChangeHandler) -> Callable[[], None]:
        return self.events.subscribe(handler)

    async def submit(
        self,
        payload: bytes,
        filename: str,
        kind: AssetKind,
        session: SessionContext,
        *,
        group_id: str | None = None,
        description: str | None = None,
    ) -> SubmissionOutcome:
        if not filename.strip():
            return SubmissionFailed(
                reason=SubmissionFailureReason.INVALID_REQUEST,
                message="A filename is required",
            )
        request = SubmissionRequest(
            payload=payload,
            filename=filename,
            kind=kind,
            group_id=group_id,
            description=description,
        )
        outcome = await self._submitter.submit(request, session)
        if outcome.ok:
            log.info("Submitted %s %r as asset %s", kind, filename, outcome.asset_id)
        else:
            log.warning("Submission of %r failed (%s): %s", filename, outcome.reason, outcome.message)
        return outcome

    async def inspect(
        self,
        asset_id: str,
        kind: AssetKind,
        session: SessionContext | None = None,
    ) -> StatusReport:
        bundle = await self._collector.collect(asset_id, kind, session)
        judgment = judge(bundle)
        return StatusReport(
            asset_id=asset_id,
            kind=kind,
            status=judgment.status,
            rule=judgment.rule,
            name=bundle.display_name,
            evidence=bundle,
        )

    async def check_status(
        self,
        asset_id: str,
        kind: AssetKind,
        session: SessionContext | None = None,
    ) -> AssetStatus:
        report = await self.inspect(asset_id, kind, session)
        return report.status

    async def withdraw(self, asset_id: str, session: SessionContext) -> WithdrawalOutcome:
        outcome = await self._withdrawer.withdraw(asset_id, session)
        if outcome.ok:
            log.info("Withdrew asset %s via %s %s", asset_id, outcome.method, outcome.url)
        else:
            log.warning("Withdrawal of asset %s failed (%s): %s", asset_id, outcome.reason, outcome.message)
        return outcome

"""Application orchestration entry points.

Each function here is synchronous: it opens an operator session, drives the
async engine with ``asyncio.run`` and persists the outcome through a unit of
work.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from logging import getLogger
from typing import TYPE_CHECKING

from assetwarden.adapters.http_resilience import ResilientClient
from assetwarden.adapters.platform import (
    HttpEvidenceCollector,
    HttpInventoryLister,
    HttpSubmissionNegotiator,
    HttpWithdrawalNegotiator,
    open_session,
    verify_credential,
)
from assetwarden.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyAssetRecordUnitOfWork,
    is_started,
    startup,
)
from assetwarden.config import (
    get_credential,
    get_default_group_id,
    get_optional_credential,
    get_platform_config,
    get_refresh_config,
)
from assetwarden.domain.events import StatusChange, StatusEvents
from assetwarden.domain.lifecycle import AssetLifecycle
from assetwarden.domain.model import AssetRecord
from assetwarden.domain.ports.unit_of_work import AssetRecordUnitOfWork
from assetwarden.domain.refresh import StatusRefresher

if TYPE_CHECKING:
    from assetwarden.adapters.platform import AuthenticatedUser, InventoryEntry, PlatformSession
    from assetwarden.config import PlatformConfig, ResilienceConfig
    from assetwarden.domain.lifecycle import StatusReport
    from assetwarden.domain.model import AssetKind, AssetStatus
    from assetwarden.domain.outcomes import SubmissionOutcome, WithdrawalOutcome

UnitOfWorkFactory = Callable[[], AssetRecordUnitOfWork]
ClientFactory = Callable[["ResilienceConfig"], ResilientClient]

log = getLogger(__name__)


class UnknownAssetError(LookupError):
    """Raised when an operation needs a local record that does not exist."""


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyAssetRecordUnitOfWork


def build_lifecycle(
    *,
    config: PlatformConfig | None = None,
    client_factory: ClientFactory = _default_client_factory,
    events: StatusEvents | None = None,
) -> AssetLifecycle:
    platform = config or get_platform_config()
    return AssetLifecycle(
        collector=HttpEvidenceCollector(config=platform, client_factory=client_factory),
        submitter=HttpSubmissionNegotiator(config=platform, client_factory=client_factory),
        withdrawer=HttpWithdrawalNegotiator(config=platform, client_factory=client_factory),
        events=events,
    )


def verify_operator_credential(
    *,
    credential: str | None = None,
    config: PlatformConfig | None = None,
    client_factory: ClientFactory = _default_client_factory,
) -> AuthenticatedUser:
    """Confirm the credential names a real account."""

    async def _verify() -> AuthenticatedUser:
        async with open_session(credential or get_credential()) as session:
            return await verify_credential(
                session, config=config, client_factory=client_factory
            )

    return asyncio.run(_verify())


def submit_asset(
    payload: bytes,
    filename: str,
    kind: AssetKind,
    *,
    credential: str | None = None,
    group_id: str | None = None,
    description: str | None = None,
    tags: Sequence[str] = (),
    lifecycle: AssetLifecycle | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SubmissionOutcome:
    """Submit one payload and record it locally as pending on success."""

    engine = lifecycle or build_lifecycle()
    effective_group = group_id or get_default_group_id()

    async def _submit() -> SubmissionOutcome:
        async with open_session(credential or get_credential()) as session:
            return await engine.submit(
                payload,
                filename,
                kind,
                session,
                group_id=effective_group,
                description=description,
            )

    outcome = asyncio.run(_submit())
    if not outcome.ok:
        return outcome

    record = AssetRecord(
        asset_id=outcome.asset_id,
        kind=kind,
        display_name=outcome.name,
        description=description,
        tags=list(tags),
        group_id=effective_group,
    )
    with _unit_of_work_factory(unit_of_work_factory)() as uow:
        uow.repositories.records.add(record)
        uow.commit()
    return outcome


def check_asset_status(
    asset_id: str,
    kind: AssetKind | None = None,
    *,
    credential: str | None = None,
    lifecycle: AssetLifecycle | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> StatusReport:
    """Resolve the current status; a matching local record is updated in place."""

    engine = lifecycle or build_lifecycle()
    uow_factory = _unit_of_work_factory(unit_of_work_factory)

    with uow_factory() as uow:
        record = uow.repositories.records.get(asset_id)
        effective_kind = kind or (record.kind if record is not None else None)
        if effective_kind is None:
            raise UnknownAssetError(f"No local record for asset {asset_id}; pass a kind")

        async def _inspect() -> StatusReport:
            effective_credential = credential or get_optional_credential()
            if not effective_credential:
                return await engine.inspect(asset_id, effective_kind)
            async with open_session(effective_credential) as session:
                return await engine.inspect(asset_id, effective_kind, session)

        report = asyncio.run(_inspect())
        if record is not None and record.status is not report.status:
            previous = record.status
            record.status = report.status
            uow.commit()
            engine.events.emit(
                StatusChange(
                    asset_id=asset_id,
                    kind=record.kind,
                    old_status=previous,
                    new_status=report.status,
                    name=record.display_name or report.name,
                )
            )
    return report


def withdraw_asset(
    asset_id: str,
    *,
    credential: str | None = None,
    lifecycle: AssetLifecycle | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> WithdrawalOutcome:
    """Remove the asset remotely and drop its local record on success."""

    engine = lifecycle or build_lifecycle()

    async def _withdraw() -> WithdrawalOutcome:
        async with open_session(credential or get_credential()) as session:
            return await engine.withdraw(asset_id, session)

    outcome = asyncio.run(_withdraw())
    if outcome.ok:
        with _unit_of_work_factory(unit_of_work_factory)() as uow:
            if uow.repositories.records.remove(asset_id):
                uow.commit()
    return outcome


def refresh_pending_assets(
    *,
    credential: str | None = None,
    max_cycles: int | None = None,
    interval_seconds: float | None = None,
    lifecycle: AssetLifecycle | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[StatusChange]:
    """Run the refresh scheduler over locally pending records.

    Runs until ``max_cycles`` cycles have completed, or forever when it is
    ``None``. Returns every status change observed.
    """

    engine = lifecycle or build_lifecycle()
    uow_factory = _unit_of_work_factory(unit_of_work_factory)
    interval = interval_seconds or get_refresh_config().interval_seconds
    changes: list[StatusChange] = []
    unsubscribe = engine.events.subscribe(changes.append)

    def load_pending() -> list[AssetRecord]:
        with uow_factory() as uow:
            return uow.repositories.records.list_pending()

    def persist(changed: list[AssetRecord]) -> None:
        with uow_factory() as uow:
            for record in changed:
                stored = uow.repositories.records.get(record.asset_id)
                if stored is not None:
                    stored.status = record.status
            uow.commit()

    async def _run(session: PlatformSession | None) -> None:
        async def check(record: AssetRecord) -> AssetStatus:
            return await engine.check_status(record.asset_id, record.kind, session)

        refresher = StatusRefresher(check, events=engine.events, interval_seconds=interval)
        await refresher.run(load_pending, persist, max_cycles=max_cycles)

    async def _refresh() -> None:
        effective_credential = credential or get_optional_credential()
        if not effective_credential:
            log.info("No credential set, refreshing with anonymous evidence only")
            await _run(None)
            return
        async with open_session(effective_credential) as session:
            await _run(session)

    try:
        asyncio.run(_refresh())
    finally:
        unsubscribe()
    log.info("Refresh finished with %d status change(s)", len(changes))
    return changes


def list_platform_inventory(
    kind: AssetKind,
    *,
    credential: str | None = None,
    group_id: str | None = None,
    max_items: int | None = None,
    lister: HttpInventoryLister | None = None,
) -> list[InventoryEntry]:
    effective_lister = lister or HttpInventoryLister()

    async def _list() -> list[InventoryEntry]:
        async with open_session(credential or get_credential()) as session:
            return await effective_lister.list_assets(
                kind,
                session,
                group_id=group_id or get_default_group_id(),
                max_items=max_items,
            )

    return asyncio.run(_list())


def list_asset_records(
    *,
    kind: AssetKind | None = None,
    status: AssetStatus | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[AssetRecord]:
    with _unit_of_work_factory(unit_of_work_factory)() as uow:
        return uow.repositories.records.find(kind=kind, status=status)

"""Periodic re-check of pending assets."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from logging import getLogger

from .events import StatusChange, StatusEvents
from .model import AssetRecord, AssetStatus

log = getLogger(__name__)

DEFAULT_REFRESH_INTERVAL_SECONDS = 10.0

type StatusCheck = Callable[[AssetRecord], Awaitable[AssetStatus]]
type RecordsProvider = Callable[[], Iterable[AssetRecord]]
type ChangedCallback = Callable[[list[AssetRecord]], None]


@dataclass(slots=True)
class RefreshCycleResult:
    checked: int = 0
    failed: int = 0
    changed: list[AssetRecord] = field(default_factory=list[AssetRecord])


class StatusRefresher:
    """Re-run status checks for pending records on a fixed interval.

    Records are checked one after another within a cycle. At most one cycle is
    in flight: a tick that fires while the previous cycle is still running is
    skipped and the running cycle is left to finish.
    """

    def __init__(
        self,
        check_status: StatusCheck,
        *,
        events: StatusEvents | None = None,
        interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._check_status = check_status
        self.events = events or StatusEvents()
        self.interval_seconds = interval_seconds
        self._cycle: asyncio.Task[RefreshCycleResult] | None = None
        self.cycles_started = 0
        self.ticks_skipped = 0

    async def run_cycle(self, records: Iterable[AssetRecord]) -> RefreshCycleResult:
        result = RefreshCycleResult()
        for record in [record for record in records if record.is_pending]:
            previous = record.status
            result.checked += 1
            try:
                status = await self._check_status(record)
            except Exception as exc:  # noqa: BLE001
                result.failed += 1
                log.warning("Status check failed for asset %s: %s", record.asset_id, exc)
                continue

            if status is previous:
                continue

            log.info("Asset %s moved from %s to %s", record.asset_id, previous, status)
            record.status = status
            result.changed.append(record)
            self.events.emit(
                StatusChange(
                    asset_id=record.asset_id,
                    kind=record.kind,
                    old_status=previous,
                    new_status=status,
                    name=record.display_name or None,
                )
            )
        return result

    async def run(
        self,
        records_provider: RecordsProvider,
        on_changed: ChangedCallback | None = None,
        *,
        max_cycles: int | None = None,
        stop: asyncio.Event | None = None,
    ) -> None:
        """Tick every ``interval_seconds`` until ``stop`` is set or ``max_cycles`` ran."""

        stop_event = stop or asyncio.Event()
        started = 0

        def cycles_left() -> bool:
            return max_cycles is None or started < max_cycles

        try:
            while cycles_left() and not stop_event.is_set():
                if self._cycle is not None and not self._cycle.done():
                    self.ticks_skipped += 1
                    log.debug("Previous refresh cycle still running, skipping tick")
                else:
                    self._reap()
                    self._cycle = asyncio.create_task(
                        self._run_and_report(records_provider, on_changed)
                    )
                    started += 1
                    self.cycles_started += 1
                    if not cycles_left():
                        break
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
        finally:
            if self._cycle is not None:
                await asyncio.wait({self._cycle})
                self._reap()

    async def _run_and_report(
        self,
        records_provider: RecordsProvider,
        on_changed: ChangedCallback | None,
    ) -> RefreshCycleResult:
        result = await self.run_cycle(records_provider())
        if result.changed and on_changed is not None:
            on_changed(result.changed)
        return result

    def _reap(self) -> None:
        cycle = self._cycle
        if cycle is None or not cycle.done():
            return
        self._cycle = None
        if cycle.cancelled():
            return
        exc = cycle.exception()
        if exc is not None:
            log.error("Refresh cycle failed", exc_info=exc)

"""Status-change notifications."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger

from .model import AssetKind, AssetStatus

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatusChange:
    asset_id: str
    kind: AssetKind
    old_status: AssetStatus
    new_status: AssetStatus
    name: str | None = None


type StatusChangeHandler = Callable[[StatusChange], None]


class StatusEvents:
    """Subscribable ``on_status_changed`` hub.

    Handlers run synchronously in subscription order. A handler that raises is
    logged and skipped; the remaining handlers still receive the event.
    """

    def __init__(self) -> None:
        self._handlers: list[StatusChangeHandler] = []

    def subscribe(self, handler: StatusChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    on_status_changed = subscribe

    def emit(self, change: StatusChange) -> None:
        for handler in tuple(self._handlers):
            try:
                handler(change)
            except Exception:
                log.exception("Status change handler failed for asset %s", change.asset_id)

    def __len__(self) -> int:
        return len(self._handlers)

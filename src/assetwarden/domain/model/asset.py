"""Asset records owned by the surrounding application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar

from .enums import AssetKind, AssetStatus


def utcnow() -> datetime:
    return datetime.now(UTC)


class ImmutableFieldError(AttributeError):
    """Raised when a write-once record field is reassigned."""


@dataclass(eq=False, kw_only=True)
class AssetRecord:
    """A submitted asset as tracked locally.

    ``asset_id`` and ``submitted_at`` are write-once. ``status`` is only written by
    the status resolver or the refresh scheduler; the remaining fields are
    user-owned metadata the engine passes through untouched.
    """

    asset_id: str
    kind: AssetKind
    status: AssetStatus = AssetStatus.PENDING
    display_name: str = ""
    description: str | None = None
    tags: list[str] = field(default_factory=list[str])
    group_id: str | None = None
    submitted_at: datetime = field(default_factory=utcnow)

    _WRITE_ONCE: ClassVar[frozenset[str]] = frozenset({"asset_id", "submitted_at"})

    def __setattr__(self, name: str, value: object) -> None:
        if name in self._WRITE_ONCE:
            current = getattr(self, name, None)
            if current is not None and current != value:
                raise ImmutableFieldError(f"{name} is immutable once set")
        super().__setattr__(name, value)

    @property
    def is_pending(self) -> bool:
        return self.status is AssetStatus.PENDING

"""Ports for talking to the remote creative platform."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from assetwarden.domain.model import AssetKind, EvidenceBundle
    from assetwarden.domain.outcomes import SubmissionOutcome, WithdrawalOutcome


@runtime_checkable
class SessionContext(Protocol):
    """Credential-bearing context for one logical operator session."""

    @property
    def cookie_header(self) -> str: ...

    @property
    def csrf_token(self) -> str | None: ...

    def remember_csrf_token(self, token: str) -> None: ...


@dataclass(frozen=True, slots=True, kw_only=True)
class SubmissionRequest:
    payload: bytes
    filename: str
    kind: AssetKind
    group_id: str | None = None
    description: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    @property
    def display_name(self) -> str:
        return PurePath(self.filename).stem or self.filename

    @property
    def extension(self) -> str:
        return PurePath(self.filename).suffix.lower().lstrip(".")


@runtime_checkable
class EvidenceCollector(Protocol):
    async def collect(
        self,
        asset_id: str,
        kind: AssetKind,
        session: SessionContext | None = None,
    ) -> EvidenceBundle: ...


@runtime_checkable
class AssetSubmitter(Protocol):
    async def submit(
        self,
        request: SubmissionRequest,
        session: SessionContext,
    ) -> SubmissionOutcome: ...


@runtime_checkable
class AssetWithdrawer(Protocol):
    async def withdraw(self, asset_id: str, session: SessionContext) -> WithdrawalOutcome: ...


__all__ = [
    "AssetSubmitter",
    "AssetWithdrawer",
    "EvidenceCollector",
    "SessionContext",
    "SubmissionRequest",
]

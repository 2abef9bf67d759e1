"""Ports for the local asset record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from assetwarden.domain.model import AssetKind, AssetRecord, AssetStatus


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class AssetRecordRepository(Repository["AssetRecord"], Protocol):
    """Key-value store of asset records keyed by platform identifier."""

    def get(self, asset_id: str) -> AssetRecord | None: ...

    def find(
        self,
        *,
        kind: AssetKind | None = None,
        status: AssetStatus | None = None,
    ) -> list[AssetRecord]: ...

    def list_pending(self) -> list[AssetRecord]: ...

    def remove(self, asset_id: str) -> bool: ...

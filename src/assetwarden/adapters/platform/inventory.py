"""Paginated inventory listing of the operator's (or a group's) assets."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from assetwarden.adapters.http_resilience import REQUEST_ERRORS, ResilientClient
from assetwarden.config.http_resilience import CacheConfig
from assetwarden.config.platform import PlatformConfig, get_platform_config
from assetwarden.domain.model import AssetKind, AssetStatus

from .schema import InventoryPage
from .session import (
    AuthenticationError,
    PlatformUnavailableError,
    ensure_csrf_token,
    session_headers,
    verify_credential,
)

if TYPE_CHECKING:
    from datetime import datetime

    from assetwarden.config.http_resilience import ResilienceConfig

    from .schema import InventoryAsset
    from .session import PlatformSession

log = getLogger(__name__)

INVENTORY_ASSET_TYPES: Final[dict[AssetKind, str]] = {
    AssetKind.AUDIO: "Audio",
    AssetKind.IMAGE: "Decal",
}
_PLATFORM_STATUSES: Final[dict[str, AssetStatus]] = {
    "Approved": AssetStatus.ACCEPTED,
    "Rejected": AssetStatus.DECLINED,
    "Pending": AssetStatus.PENDING,
    "Unprocessed": AssetStatus.PENDING,
}


def status_from_platform(value: str | None) -> AssetStatus:
    if value is None:
        return AssetStatus.PENDING
    return _PLATFORM_STATUSES.get(value, AssetStatus.PENDING)


@dataclass(frozen=True, slots=True)
class InventoryEntry:
    asset_id: str
    name: str
    kind: AssetKind
    status: AssetStatus
    created: datetime | None = None
    group_id: str | None = None


def _entry(asset: InventoryAsset, kind: AssetKind) -> InventoryEntry:
    return InventoryEntry(
        asset_id=str(asset.id),
        name=asset.name,
        kind=kind,
        status=status_from_platform(asset.asset_status),
        created=asset.created or asset.updated,
        group_id=str(asset.group_id) if asset.group_id is not None else None,
    )


def _should_cache_page(payload: object) -> bool:
    # pending items change state; only settled pages are worth keeping
    try:
        page = InventoryPage.model_validate(payload)
    except ValidationError:
        return False
    return all(status_from_platform(asset.asset_status).is_terminal for asset in page.data)


def _default_resilience_config() -> ResilienceConfig:
    return replace(
        get_platform_config().account_resilience,
        name="platform-inventory",
        cache=CacheConfig(backend="sqlite", should_cache=_should_cache_page),
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpInventoryLister:
    config: PlatformConfig = field(default_factory=get_platform_config)
    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def list_assets(
        self,
        kind: AssetKind,
        session: PlatformSession,
        *,
        group_id: str | None = None,
        max_items: int | None = None,
    ) -> list[InventoryEntry]:
        if group_id:
            url = self.config.endpoints.group_inventory.format(owner_id=group_id)
        else:
            user = session.user or await verify_credential(
                session, config=self.config, client_factory=self.client_factory
            )
            url = self.config.endpoints.user_inventory.format(owner_id=user.id)

        entries: list[InventoryEntry] = []
        cursor: str | None = None
        async with self.client_factory(self.resilience) as client:
            await ensure_csrf_token(client, session, self.config.endpoints)
            while True:
                params = {"assetType": INVENTORY_ASSET_TYPES[kind]}
                if cursor:
                    params["cursor"] = cursor
                page = await self._fetch_page(client, url, params, session)
                if page is None:
                    break
                for asset in page.data:
                    entries.append(_entry(asset, kind))
                    if max_items is not None and len(entries) >= max_items:
                        return entries
                cursor = page.next_page_cursor
                if not cursor or not page.data:
                    break
        return entries

    async def _fetch_page(
        self,
        client: ResilientClient,
        url: str,
        params: dict[str, str],
        session: PlatformSession,
    ) -> InventoryPage | None:
        try:
            response = await client.get(url, params=params, headers=session_headers(session))
        except REQUEST_ERRORS as exc:
            raise PlatformUnavailableError(f"Inventory request failed: {exc}") from exc

        if response.status_code in {401, 403}:
            raise AuthenticationError(
                "Inventory listing was refused for this credential",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise PlatformUnavailableError(f"Inventory endpoint not found: {url}")
        if response.status_code != 200:
            log.warning("Inventory page answered %s, stopping", response.status_code)
            return None
        try:
            return InventoryPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            log.warning("Unreadable inventory page: %s", exc)
            return None

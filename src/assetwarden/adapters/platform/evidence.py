"""Evidence collector: read-only probes against the platform for one asset.

Four probes run sequentially, each with its own timeout:

1. anonymous binary delivery
2. authenticated binary delivery (only with a credential)
3. catalog metadata lookup
4. listing page fetch and phrase scan

A probe that fails degrades its own field to ``unknown`` / ``fetch-failed``;
collection itself never raises.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import ValidationError

from assetwarden.adapters.http_resilience import REQUEST_ERRORS, ResilientClient
from assetwarden.config.platform import PlatformConfig, get_platform_config
from assetwarden.domain.model import (
    CatalogEvidence,
    CatalogMetadata,
    CatalogPresence,
    EvidenceBundle,
    ListingEvidence,
    ListingSignal,
    Reachability,
)
from assetwarden.domain.phrases import extract_title, scan_listing_text, visible_text
from assetwarden.domain.ports.platform import EvidenceCollector

from .schema import CatalogDetailsResponse, CatalogItem

if TYPE_CHECKING:
    from assetwarden.config.http_resilience import ResilienceConfig
    from assetwarden.domain.model import AssetKind
    from assetwarden.domain.ports.platform import SessionContext

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _catalog_metadata(item: CatalogItem) -> CatalogMetadata:
    return CatalogMetadata(
        name=item.name,
        is_for_sale=item.is_for_sale,
        is_restricted=item.is_restricted,
        is_limited=item.is_limited,
        is_limited_unique=item.is_limited_unique,
        price_status=item.price_status,
        created=item.created,
    )


def _cookie_headers(session: SessionContext | None) -> dict[str, str]:
    if session is None or not session.cookie_header:
        return {}
    return {"Cookie": session.cookie_header}


@dataclass(slots=True)
class HttpEvidenceCollector:
    config: PlatformConfig = field(default_factory=get_platform_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def collect(
        self,
        asset_id: str,
        kind: AssetKind,
        session: SessionContext | None = None,
    ) -> EvidenceBundle:
        # separate clients so the anonymous probe never carries session cookies
        async with self.client_factory(self.config.probe_resilience) as anonymous:
            anonymous_reachability = await self._probe_delivery(
                anonymous,
                asset_id,
                headers={},
                timeout=self.config.probe_timeouts.anonymous_delivery,
            )

        cookies = _cookie_headers(session)
        async with self.client_factory(self.config.probe_resilience) as client:
            authenticated_reachability = Reachability.UNKNOWN
            if cookies:
                authenticated_reachability = await self._probe_delivery(
                    client,
                    asset_id,
                    headers=cookies,
                    timeout=self.config.probe_timeouts.authenticated_delivery,
                )
            catalog = await self._probe_catalog(client, asset_id, cookies)
            listing = await self._probe_listing(client, asset_id, cookies)

        bundle = EvidenceBundle(
            asset_id=asset_id,
            kind=kind,
            anonymous_reachability=anonymous_reachability,
            authenticated_reachability=authenticated_reachability,
            catalog=catalog,
            listing=listing,
        )
        log.debug(
            "Asset %s evidence: anonymous=%s authenticated=%s catalog=%s listing=%s",
            asset_id,
            anonymous_reachability,
            authenticated_reachability,
            catalog.presence,
            listing.signal,
        )
        return bundle

    async def _probe_delivery(
        self,
        client: ResilientClient,
        asset_id: str,
        *,
        headers: dict[str, str],
        timeout: float,
    ) -> Reachability:
        url = self.config.endpoints.asset_delivery.format(asset_id=asset_id)
        try:
            response = await client.get(url, headers=headers, timeout=timeout)
        except REQUEST_ERRORS as exc:
            log.warning("Delivery probe for asset %s failed: %s", asset_id, exc)
            return Reachability.UNKNOWN
        return Reachability.from_status_code(response.status_code)

    async def _probe_catalog(
        self,
        client: ResilientClient,
        asset_id: str,
        headers: dict[str, str],
    ) -> CatalogEvidence:
        if not asset_id.isdigit():
            return CatalogEvidence()
        try:
            response = await client.post(
                self.config.endpoints.catalog_details,
                json={"items": [{"itemType": "Asset", "id": int(asset_id)}]},
                headers=headers,
                timeout=self.config.probe_timeouts.catalog,
            )
        except REQUEST_ERRORS as exc:
            log.warning("Catalog probe for asset %s failed: %s", asset_id, exc)
            return CatalogEvidence()
        if response.status_code != 200:
            log.debug("Catalog probe for asset %s returned %s", asset_id, response.status_code)
            return CatalogEvidence()
        try:
            details = CatalogDetailsResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            log.warning("Catalog probe for asset %s returned an unreadable body: %s", asset_id, exc)
            return CatalogEvidence()
        if not details.data:
            return CatalogEvidence(presence=CatalogPresence.ABSENT)
        return CatalogEvidence(
            presence=CatalogPresence.PRESENT,
            metadata=_catalog_metadata(details.data[0]),
        )

    async def _probe_listing(
        self,
        client: ResilientClient,
        asset_id: str,
        headers: dict[str, str],
    ) -> ListingEvidence:
        url = self.config.endpoints.listing_page.format(asset_id=asset_id)
        try:
            response = await client.get(
                url,
                headers=headers,
                timeout=self.config.probe_timeouts.listing_page,
                follow_redirects=True,
            )
        except REQUEST_ERRORS as exc:
            log.warning("Listing probe for asset %s failed: %s", asset_id, exc)
            return ListingEvidence()
        if response.status_code == 404:
            return ListingEvidence(signal=ListingSignal.PAGE_NOT_FOUND)
        if response.status_code != 200:
            log.debug("Listing probe for asset %s returned %s", asset_id, response.status_code)
            return ListingEvidence()
        markup = response.text
        text = visible_text(markup)
        return ListingEvidence(
            signal=scan_listing_text(text),
            text=text,
            title=extract_title(markup),
        )


if TYPE_CHECKING:
    _collector_check: EvidenceCollector = HttpEvidenceCollector()

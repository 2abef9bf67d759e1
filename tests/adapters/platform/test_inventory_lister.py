from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from assetwarden.adapters.platform import (
    AuthenticationError,
    HttpInventoryLister,
    InventoryEntry,
    PlatformSession,
    PlatformUnavailableError,
)
from assetwarden.adapters.http_resilience import ResilientClient
from assetwarden.adapters.platform.inventory import status_from_platform
from assetwarden.adapters.platform.schema import AuthenticatedUser
from assetwarden.domain.model import AssetKind, AssetStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from pathlib import Path

    from assetwarden.config.http_resilience import ResilienceConfig

    type Handler = Callable[[httpx.Request], httpx.Response]
    type MakeClientFactory = Callable[[Handler], Callable[[ResilienceConfig], ResilientClient]]


PAGES = {
    None: {
        "data": [
            {"id": 1, "name": "Loop", "assetStatus": "Approved"},
            {"id": 2, "name": "Hit", "assetStatus": "Rejected"},
        ],
        "nextPageCursor": "page-2",
    },
    "page-2": {
        "data": [{"id": 3, "name": "Pad", "assetStatus": "Pending", "groupId": 77}],
        "nextPageCursor": None,
    },
}


def _platform(seen: list[httpx.Request], inventory_status: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host == "auth.roblox.com":
            return httpx.Response(403, headers={"x-csrf-token": "csrf"})
        if host == "users.roblox.com":
            return httpx.Response(200, json={"id": 42, "name": "composer"})
        seen.append(request)
        if inventory_status != 200:
            return httpx.Response(inventory_status)
        return httpx.Response(200, json=PAGES[request.url.params.get("cursor")])

    return handler


def _list(
    make_client_factory: MakeClientFactory,
    handler: Handler,
    kind: AssetKind = AssetKind.AUDIO,
    **kwargs: object,
) -> list[InventoryEntry]:
    lister = HttpInventoryLister(client_factory=make_client_factory(handler))
    session = PlatformSession.from_credential("secret")
    return asyncio.run(lister.list_assets(kind, session, **kwargs))  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Approved", AssetStatus.ACCEPTED),
        ("Rejected", AssetStatus.DECLINED),
        ("Pending", AssetStatus.PENDING),
        ("Unprocessed", AssetStatus.PENDING),
        ("SomethingNew", AssetStatus.PENDING),
        (None, AssetStatus.PENDING),
    ],
)
def test_status_from_platform(value: str | None, expected: AssetStatus) -> None:
    assert status_from_platform(value) is expected


def test_lists_user_inventory_across_pages(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []

    entries = _list(make_client_factory, _platform(seen))

    assert [(entry.asset_id, entry.status) for entry in entries] == [
        ("1", AssetStatus.ACCEPTED),
        ("2", AssetStatus.DECLINED),
        ("3", AssetStatus.PENDING),
    ]
    assert entries[2].group_id == "77"
    assert all(entry.kind is AssetKind.AUDIO for entry in entries)
    assert seen[0].url.path == "/v1/users/42/assets"
    assert seen[0].url.params["assetType"] == "Audio"
    assert seen[1].url.params["cursor"] == "page-2"


def test_group_inventory_skips_identity_lookup(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []

    entries = _list(make_client_factory, _platform(seen), AssetKind.IMAGE, group_id="77")

    assert len(entries) == 3
    assert seen[0].url.path == "/v1/groups/77/assets"
    assert seen[0].url.params["assetType"] == "Decal"


def test_known_user_is_not_looked_up_again(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    hosts: list[str] = []
    platform = _platform(seen)

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return platform(request)

    lister = HttpInventoryLister(client_factory=make_client_factory(handler))
    session = PlatformSession.from_credential("secret")
    session.user = AuthenticatedUser(id=9, name="known")

    asyncio.run(lister.list_assets(AssetKind.AUDIO, session))

    assert "users.roblox.com" not in hosts
    assert seen[0].url.path == "/v1/users/9/assets"


def test_max_items_stops_early(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []

    entries = _list(make_client_factory, _platform(seen), max_items=2)

    assert [entry.asset_id for entry in entries] == ["1", "2"]
    assert len(seen) == 1


@pytest.mark.parametrize("status", [401, 403])
def test_refused_listing_raises_authentication_error(
    make_client_factory: MakeClientFactory,
    status: int,
) -> None:
    with pytest.raises(AuthenticationError):
        _list(make_client_factory, _platform([], inventory_status=status), group_id="77")


def test_missing_endpoint_raises_unavailable(make_client_factory: MakeClientFactory) -> None:
    with pytest.raises(PlatformUnavailableError):
        _list(make_client_factory, _platform([], inventory_status=404), group_id="77")


def test_server_error_returns_what_was_collected(make_client_factory: MakeClientFactory) -> None:
    entries = _list(make_client_factory, _platform([], inventory_status=503), group_id="77")

    assert entries == []


def _cached_listing_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    # keeps the hishel cache layer and swaps only the network transport
    def factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, transport=httpx.MockTransport(handler))

    return factory


def test_settled_pages_are_served_from_cache_on_later_listing(isolated_data_dir: Path) -> None:
    seen: list[httpx.Request] = []
    lister = HttpInventoryLister(client_factory=_cached_listing_factory(_platform(seen)))

    def list_group() -> list[InventoryEntry]:
        session = PlatformSession.from_credential("secret")
        session.remember_csrf_token("csrf")
        return asyncio.run(lister.list_assets(AssetKind.AUDIO, session, group_id="77"))

    first = list_group()
    cursors_after_first = [request.url.params.get("cursor") for request in seen]
    second = list_group()

    assert first == second
    assert cursors_after_first == [None, "page-2"]
    # the first page is settled and cached; page-2 still holds a pending item
    assert [request.url.params.get("cursor") for request in seen] == [None, "page-2", "page-2"]
    assert (isolated_data_dir / "http_cache.db").exists()


def test_inventory_cache_lives_in_the_data_directory() -> None:
    cache = HttpInventoryLister().resilience.cache

    assert cache is not None
    assert cache.backend == "sqlite"
    assert cache.should_cache is not None

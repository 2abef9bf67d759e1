from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from assetwarden.adapters.platform import (
    AuthenticationError,
    PlatformSession,
    PlatformUnavailableError,
    open_session,
    verify_credential,
)
from assetwarden.adapters.platform.session import (
    ensure_csrf_token,
    is_guest_response,
    normalize_cookie_header,
    rotated_csrf_token,
    session_headers,
)
from assetwarden.config.platform import get_platform_config
from assetwarden.domain.ports.platform import SessionContext

if TYPE_CHECKING:
    from collections.abc import Callable

    from assetwarden.adapters.http_resilience import ResilientClient
    from assetwarden.config.http_resilience import ResilienceConfig

    type Handler = Callable[[httpx.Request], httpx.Response]
    type MakeClientFactory = Callable[[Handler], Callable[[ResilienceConfig], ResilientClient]]


USER = {"id": 42, "name": "composer", "displayName": "Composer"}


def _identity(status: int, body: object = USER) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "users.roblox.com"
        return httpx.Response(status, json=body)

    return handler


@pytest.mark.parametrize(
    ("credential", "expected"),
    [
        ("abc", ".ROBLOSECURITY=abc"),
        ("  abc  ", ".ROBLOSECURITY=abc"),
        (".ROBLOSECURITY=abc", ".ROBLOSECURITY=abc"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_cookie_header(credential: str, expected: str) -> None:
    assert normalize_cookie_header(credential) == expected


@pytest.mark.parametrize(
    "credential",
    ["abc\u2026", "abc\u200b", ".ROBLOSECURITY=caf\u00e9", "ab\x07c"],
)
def test_normalize_cookie_header_rejects_unsendable_credential(credential: str) -> None:
    with pytest.raises(AuthenticationError, match="cannot carry"):
        normalize_cookie_header(credential)


def test_platform_session_satisfies_session_context() -> None:
    session = PlatformSession.from_credential("abc")

    assert isinstance(session, SessionContext)
    assert session.has_credential


def test_session_headers_include_cached_csrf_token() -> None:
    session = PlatformSession.from_credential("abc")
    assert session_headers(session) == {"Cookie": ".ROBLOSECURITY=abc"}

    session.remember_csrf_token("token-1")

    assert session_headers(session) == {
        "Cookie": ".ROBLOSECURITY=abc",
        "X-CSRF-TOKEN": "token-1",
    }


def test_guest_response_detection() -> None:
    guest = httpx.Response(200, headers=[("set-cookie", "GuestData=UserID=-1234; path=/")])
    member = httpx.Response(200, headers=[("set-cookie", "RBXEventTrackerV2=browserid=1")])

    assert is_guest_response(guest)
    assert not is_guest_response(member)


def test_rotated_csrf_token_only_on_forbidden() -> None:
    assert rotated_csrf_token(httpx.Response(403, headers={"x-csrf-token": "new"})) == "new"
    assert rotated_csrf_token(httpx.Response(403)) is None
    assert rotated_csrf_token(httpx.Response(200, headers={"x-csrf-token": "new"})) is None


def test_ensure_csrf_token_fetches_once_and_caches(make_client_factory: MakeClientFactory) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(403, headers={"x-csrf-token": "fresh"})

    config = get_platform_config()
    session = PlatformSession.from_credential("abc")

    async def run() -> tuple[str | None, str | None]:
        async with make_client_factory(handler)(config.publish_resilience) as client:
            first = await ensure_csrf_token(client, session, config.endpoints)
            second = await ensure_csrf_token(client, session, config.endpoints)
        return first, second

    assert asyncio.run(run()) == ("fresh", "fresh")
    assert len(calls) == 1
    assert calls[0].method == "POST"
    assert calls[0].headers["cookie"] == ".ROBLOSECURITY=abc"
    assert session.csrf_token == "fresh"


def test_missing_csrf_token_is_tolerated(make_client_factory: MakeClientFactory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    config = get_platform_config()
    session = PlatformSession.from_credential("abc")

    async def run() -> str | None:
        async with make_client_factory(handler)(config.publish_resilience) as client:
            return await ensure_csrf_token(client, session, config.endpoints)

    assert asyncio.run(run()) is None
    assert session.csrf_token is None


def test_verify_credential_records_user(make_client_factory: MakeClientFactory) -> None:
    session = PlatformSession.from_credential("abc")

    user = asyncio.run(
        verify_credential(session, client_factory=make_client_factory(_identity(200)))
    )

    assert user.id == 42
    assert session.user == user


@pytest.mark.parametrize("status", [401, 403])
def test_verify_credential_rejects_invalid_credential(
    make_client_factory: MakeClientFactory,
    status: int,
) -> None:
    session = PlatformSession.from_credential("expired")

    with pytest.raises(AuthenticationError) as excinfo:
        asyncio.run(
            verify_credential(session, client_factory=make_client_factory(_identity(status)))
        )

    assert excinfo.value.status_code == status
    assert session.user is None


def test_verify_credential_rejects_empty_credential_without_network(
    make_client_factory: MakeClientFactory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    with pytest.raises(AuthenticationError):
        asyncio.run(
            verify_credential(
                PlatformSession.from_credential(""),
                client_factory=make_client_factory(handler),
            )
        )


def test_verify_credential_distinguishes_outage(make_client_factory: MakeClientFactory) -> None:
    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    session = PlatformSession.from_credential("abc")

    with pytest.raises(PlatformUnavailableError):
        asyncio.run(verify_credential(session, client_factory=make_client_factory(offline)))
    with pytest.raises(PlatformUnavailableError):
        asyncio.run(
            verify_credential(session, client_factory=make_client_factory(_identity(503)))
        )


def test_verify_credential_rejects_anonymous_identity_body(
    make_client_factory: MakeClientFactory,
) -> None:
    session = PlatformSession.from_credential("abc")

    with pytest.raises(AuthenticationError):
        asyncio.run(
            verify_credential(
                session,
                client_factory=make_client_factory(_identity(200, {"errors": []})),
            )
        )


def test_open_session_releases_on_exit(make_client_factory: MakeClientFactory) -> None:
    async def run() -> PlatformSession:
        async with open_session(
            "abc", verify=True, client_factory=make_client_factory(_identity(200))
        ) as session:
            session.remember_csrf_token("token")
            assert session.user is not None
            assert not session.released
        return session

    session = asyncio.run(run())

    assert session.released
    assert session.csrf_token is None
    assert session.user is None


def test_open_session_releases_when_body_raises() -> None:
    holder: list[PlatformSession] = []

    async def run() -> None:
        async with open_session("abc") as session:
            holder.append(session)
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(run())

    assert holder[0].released


def test_open_session_rejects_non_ascii_credential() -> None:
    async def run() -> None:
        async with open_session("abc…"):
            raise AssertionError("session should not open")

    with pytest.raises(AuthenticationError):
        asyncio.run(run())


def test_csrf_fetch_with_unencodable_cookie_is_tolerated(
    make_client_factory: MakeClientFactory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    config = get_platform_config()
    session = PlatformSession(cookie_header=".ROBLOSECURITY=abc…")

    async def run() -> str | None:
        async with make_client_factory(handler)(config.publish_resilience) as client:
            return await ensure_csrf_token(client, session, config.endpoints)

    assert asyncio.run(run()) is None

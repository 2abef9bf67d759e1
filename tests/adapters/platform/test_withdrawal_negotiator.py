from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from typing import TYPE_CHECKING

import httpx
import pytest

from assetwarden.adapters.platform import (
    HttpWithdrawalNegotiator,
    PlatformSession,
    classify_withdrawal_response,
)
from assetwarden.config.platform import PlatformConfig, PlatformEndpoints
from assetwarden.domain.fallback import Candidate, Verdict
from assetwarden.domain.outcomes import (
    WithdrawalFailed,
    WithdrawalFailureReason,
    WithdrawalSucceeded,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from assetwarden.adapters.http_resilience import ResilientClient
    from assetwarden.config.http_resilience import ResilienceConfig

    type Handler = Callable[[httpx.Request], httpx.Response]
    type MakeClientFactory = Callable[[Handler], Callable[[ResilienceConfig], ResilientClient]]


CSRF_URL = "https://auth.example.test/v2/logout"
TEMPLATES = (
    "https://one.example.test/asset/{asset_id}",
    "https://two.example.test/asset/{asset_id}",
    "https://three.example.test/asset/{asset_id}",
)
CANDIDATE = Candidate("DELETE", "https://one.example.test/asset/5")


def _config() -> PlatformConfig:
    return PlatformConfig(
        endpoints=replace(PlatformEndpoints(), csrf=CSRF_URL, withdrawal=TEMPLATES)
    )


def _scripted(
    statuses: dict[str, list[int]],
    seen: list[httpx.Request],
) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == CSRF_URL:
            return httpx.Response(403, headers={"x-csrf-token": "csrf-1"})
        seen.append(request)
        queue = statuses[request.method]
        return httpx.Response(queue.pop(0) if queue else 404)

    return handler


def _withdraw(
    make_client_factory: MakeClientFactory,
    handler: Handler,
    asset_id: str = "5",
    session: PlatformSession | None = None,
) -> WithdrawalSucceeded | WithdrawalFailed:
    negotiator = HttpWithdrawalNegotiator(
        config=_config(),
        client_factory=make_client_factory(handler),
    )
    return asyncio.run(
        negotiator.withdraw(asset_id, session or PlatformSession.from_credential("secret"))
    )


@pytest.mark.parametrize("status", [200, 204])
def test_success_statuses(status: int) -> None:
    attempt = classify_withdrawal_response(httpx.Response(status), CANDIDATE)

    assert attempt.verdict is Verdict.SUCCEEDED
    assert attempt.value == CANDIDATE


@pytest.mark.parametrize(
    ("status", "verdict", "reason"),
    [
        (401, Verdict.STOP, WithdrawalFailureReason.AUTHENTICATION),
        (403, Verdict.STOP, WithdrawalFailureReason.FORBIDDEN),
        (404, Verdict.ADVANCE, WithdrawalFailureReason.NOT_FOUND),
        (500, Verdict.ADVANCE, WithdrawalFailureReason.SERVER_FAULT),
        (409, Verdict.ADVANCE, WithdrawalFailureReason.GENERIC),
    ],
)
def test_failure_statuses(
    status: int,
    verdict: Verdict,
    reason: WithdrawalFailureReason,
) -> None:
    attempt = classify_withdrawal_response(httpx.Response(status), CANDIDATE)

    assert attempt.verdict is verdict
    assert attempt.failure is not None
    assert attempt.failure.reason is reason
    assert attempt.failure.status_code == status


def test_failure_message_comes_from_body() -> None:
    response = httpx.Response(500, json={"errors": [{"code": 0, "message": "Try later"}]})

    attempt = classify_withdrawal_response(response, CANDIDATE)

    assert attempt.failure is not None
    assert attempt.failure.message == "Try later"


def test_delete_succeeds_after_two_missing_candidates(
    make_client_factory: MakeClientFactory,
) -> None:
    seen: list[httpx.Request] = []
    handler = _scripted({"DELETE": [404, 404, 200], "POST": []}, seen)

    outcome = _withdraw(make_client_factory, handler)

    assert outcome == WithdrawalSucceeded(
        asset_id="5",
        method="DELETE",
        url="https://three.example.test/asset/5",
    )
    assert [request.url.host for request in seen] == [
        "one.example.test",
        "two.example.test",
        "three.example.test",
    ]
    assert all(request.headers["x-csrf-token"] == "csrf-1" for request in seen)


def test_forbidden_delete_switches_to_post(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    handler = _scripted({"DELETE": [403], "POST": [403, 200]}, seen)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalSucceeded)
    assert outcome.method == "POST"
    assert outcome.url == "https://two.example.test/asset/5"
    assert [request.method for request in seen] == ["DELETE", "POST", "POST"]
    assert json.loads(seen[1].content) == {"assetId": 5}


def test_all_candidates_missing_reports_not_found(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    handler = _scripted({"DELETE": [404, 404, 404], "POST": []}, seen)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalFailed)
    assert outcome.reason is WithdrawalFailureReason.NOT_FOUND
    assert len(seen) == 3


def test_rejected_credential_stops_immediately(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    handler = _scripted({"DELETE": [401, 200], "POST": [200]}, seen)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalFailed)
    assert outcome.reason is WithdrawalFailureReason.AUTHENTICATION
    assert len(seen) == 1


def test_forbidden_in_both_passes_reports_forbidden(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    handler = _scripted({"DELETE": [403], "POST": [403, 403, 403]}, seen)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalFailed)
    assert outcome.reason is WithdrawalFailureReason.FORBIDDEN
    assert len(seen) == 4


def test_network_failures_exhaust_to_network_unreachable(
    make_client_factory: MakeClientFactory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalFailed)
    assert outcome.reason is WithdrawalFailureReason.NETWORK_UNREACHABLE


def test_rotated_csrf_token_is_retried_once(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == CSRF_URL:
            return httpx.Response(403, headers={"x-csrf-token": "csrf-1"})
        seen.append(request)
        if request.headers.get("x-csrf-token") == "csrf-1":
            return httpx.Response(403, headers={"x-csrf-token": "csrf-2"})
        return httpx.Response(204)

    outcome = _withdraw(make_client_factory, handler)

    assert isinstance(outcome, WithdrawalSucceeded)
    assert outcome.method == "DELETE"
    assert [request.headers["x-csrf-token"] for request in seen] == ["csrf-1", "csrf-2"]


def test_missing_credential_or_id_fails_without_network(
    make_client_factory: MakeClientFactory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    no_credential = _withdraw(
        make_client_factory, handler, session=PlatformSession.from_credential("")
    )
    no_id = _withdraw(make_client_factory, handler, asset_id="  ")

    assert isinstance(no_credential, WithdrawalFailed)
    assert no_credential.reason is WithdrawalFailureReason.AUTHENTICATION
    assert isinstance(no_id, WithdrawalFailed)
    assert no_id.reason is WithdrawalFailureReason.INVALID_REQUEST


def test_unencodable_cookie_returns_typed_failure(make_client_factory: MakeClientFactory) -> None:
    seen: list[httpx.Request] = []
    session = PlatformSession(cookie_header=".ROBLOSECURITY=abc…")

    outcome = _withdraw(make_client_factory, _scripted({}, seen), session=session)

    assert isinstance(outcome, WithdrawalFailed)
    assert outcome.reason is WithdrawalFailureReason.NETWORK_UNREACHABLE
    assert seen == []

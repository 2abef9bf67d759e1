"""Withdrawal negotiator: remove an asset through DELETE, then POST, candidates.

The DELETE pass walks every withdrawal endpoint in order. A 403 ends that
pass and starts a POST pass over the same endpoints, since some deployments
only accept POST for removal. Within a pass a 404 moves on to the next
candidate; when all candidates are exhausted the last failure is reported.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from assetwarden.adapters.http_resilience import REQUEST_ERRORS, ResilientClient
from assetwarden.config.platform import PlatformConfig, get_platform_config
from assetwarden.domain.fallback import Attempt, Candidate, FallbackState, run_candidates
from assetwarden.domain.outcomes import (
    WithdrawalFailed,
    WithdrawalFailureReason,
    WithdrawalSucceeded,
)
from assetwarden.domain.ports.platform import AssetWithdrawer

from .schema import IngestionResponse
from .session import ensure_csrf_token, is_guest_response, rotated_csrf_token, session_headers

if TYPE_CHECKING:
    from assetwarden.config.http_resilience import ResilienceConfig
    from assetwarden.domain.fallback import FallbackRun
    from assetwarden.domain.outcomes import WithdrawalOutcome
    from assetwarden.domain.ports.platform import SessionContext

log = getLogger(__name__)

type WithdrawalAttempt = Attempt[Candidate, WithdrawalFailed]

_SUCCESS_STATUSES: Final[frozenset[int]] = frozenset({200, 204})


def _response_message(response: httpx.Response, default: str) -> str:
    try:
        body = IngestionResponse.model_validate_json(response.text)
    except ValidationError:
        return default
    error = body.first_error
    if error is not None and error.message:
        return error.message
    return body.message or body.error or default


def classify_withdrawal_response(
    response: httpx.Response,
    candidate: Candidate,
) -> WithdrawalAttempt:
    status = response.status_code
    if status in _SUCCESS_STATUSES:
        return Attempt.succeeded(candidate)

    def failure(reason: WithdrawalFailureReason, default: str) -> WithdrawalFailed:
        return WithdrawalFailed(
            reason=reason,
            message=_response_message(response, default),
            status_code=status,
        )

    if status == 401 or is_guest_response(response):
        return Attempt.stop(
            failure(WithdrawalFailureReason.AUTHENTICATION, "The credential is invalid or expired")
        )
    if status == 403:
        return Attempt.stop(
            failure(
                WithdrawalFailureReason.FORBIDDEN,
                "Forbidden: missing CSRF token or insufficient permissions",
            )
        )
    if status == 404:
        return Attempt.advance(
            failure(WithdrawalFailureReason.NOT_FOUND, "Asset not found or already deleted")
        )
    if status >= 500:
        return Attempt.advance(failure(WithdrawalFailureReason.SERVER_FAULT, f"HTTP {status}"))
    return Attempt.advance(failure(WithdrawalFailureReason.GENERIC, f"Unexpected status: {status}"))


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpWithdrawalNegotiator:
    config: PlatformConfig = field(default_factory=get_platform_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def candidates(self, asset_id: str, method: str) -> list[Candidate]:
        return [
            Candidate(method, template.format(asset_id=asset_id))
            for template in self.config.endpoints.withdrawal
        ]

    async def withdraw(self, asset_id: str, session: SessionContext) -> WithdrawalOutcome:
        asset_id = asset_id.strip()
        if not session.cookie_header:
            return WithdrawalFailed(
                reason=WithdrawalFailureReason.AUTHENTICATION,
                message="A credential is required",
            )
        if not asset_id:
            return WithdrawalFailed(
                reason=WithdrawalFailureReason.INVALID_REQUEST,
                message="An asset id is required",
            )

        async with self.client_factory(self.config.withdrawal_resilience) as client:
            await ensure_csrf_token(client, session, self.config.endpoints)
            attempt = partial(self._attempt, client, asset_id, session)

            run = await run_candidates(self.candidates(asset_id, "DELETE"), attempt)
            if _forbidden(run):
                log.debug("DELETE forbidden for asset %s, retrying with POST", asset_id)
                run = await run_candidates(self.candidates(asset_id, "POST"), attempt)

        if run.state is FallbackState.SUCCEEDED and run.value is not None:
            return WithdrawalSucceeded(
                asset_id=asset_id,
                method=run.value.method,
                url=run.value.url,
            )
        return run.failure or WithdrawalFailed(
            reason=WithdrawalFailureReason.GENERIC,
            message="All withdrawal methods failed",
        )

    async def _attempt(
        self,
        client: ResilientClient,
        asset_id: str,
        session: SessionContext,
        candidate: Candidate,
    ) -> WithdrawalAttempt:
        try:
            response = await self._send(client, asset_id, session, candidate)
            token = rotated_csrf_token(response)
            if token is not None and token != session.csrf_token:
                session.remember_csrf_token(token)
                response = await self._send(client, asset_id, session, candidate)
        except REQUEST_ERRORS as exc:
            return Attempt.advance(
                WithdrawalFailed(
                    reason=WithdrawalFailureReason.NETWORK_UNREACHABLE,
                    message=f"Cannot reach {candidate.url}: {exc}",
                )
            )
        result = classify_withdrawal_response(response, candidate)
        # a 403 only ends the DELETE pass; during the POST pass it is per-candidate
        if (
            candidate.method == "POST"
            and result.failure is not None
            and result.failure.reason is WithdrawalFailureReason.FORBIDDEN
        ):
            return Attempt.advance(result.failure)
        return result

    async def _send(
        self,
        client: ResilientClient,
        asset_id: str,
        session: SessionContext,
        candidate: Candidate,
    ) -> httpx.Response:
        headers = session_headers(session)
        if candidate.method == "POST":
            return await client.post(
                candidate.url,
                json={"assetId": int(asset_id) if asset_id.isdigit() else asset_id},
                headers=headers,
            )
        return await client.request(candidate.method, candidate.url, headers=headers)


def _forbidden(run: FallbackRun[Candidate, WithdrawalFailed]) -> bool:
    return (
        run.state is FallbackState.STOPPED
        and run.failure is not None
        and run.failure.reason is WithdrawalFailureReason.FORBIDDEN
    )


if TYPE_CHECKING:
    _withdrawer_check: AssetWithdrawer = HttpWithdrawalNegotiator()

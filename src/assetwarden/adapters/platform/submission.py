"""Submission negotiator: encode, post and classify one ingestion request.

The two asset kinds use different ingestion endpoints and payload shapes:

- audio is posted as JSON with the payload base64-embedded in ``file``
- images are posted as a multipart form

A response only counts as a success when it names the assigned identifier.
Error codes embedded in the body outrank the HTTP status code, and a guest
session cookie outranks both.
"""

from __future__ import annotations

import base64
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from assetwarden.adapters.http_resilience import REQUEST_ERRORS, ResilientClient
from assetwarden.config.platform import MEGABYTE, PlatformConfig, get_platform_config
from assetwarden.domain.fallback import Attempt, Candidate, FallbackState, run_candidates
from assetwarden.domain.model import AssetKind
from assetwarden.domain.outcomes import (
    PLATFORM_ERROR_CODES,
    SubmissionFailed,
    SubmissionFailureReason,
    SubmissionSucceeded,
)
from assetwarden.domain.ports.platform import AssetSubmitter

from .schema import IngestionResponse
from .session import (
    ensure_csrf_token,
    is_guest_response,
    rotated_csrf_token,
    session_headers,
)

if TYPE_CHECKING:
    from assetwarden.config.http_resilience import ResilienceConfig
    from assetwarden.domain.outcomes import SubmissionOutcome
    from assetwarden.domain.ports.platform import SessionContext, SubmissionRequest

log = getLogger(__name__)

type IngestionAttempt = Attempt[str, SubmissionFailed]

AUDIO_CONTENT_TYPES: Final[dict[str, str]] = {
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
}
IMAGE_CONTENT_TYPES: Final[dict[str, str]] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
}
IMAGE_ASSET_TYPE_ID: Final[str] = "1"
DESCRIPTION_ORIGIN: Final[str] = "https://www.roblox.com"

# error code 3 is a transport-level problem on one endpoint, not a verdict on the file
_ADVANCING_CODES: Final[frozenset[int]] = frozenset({3})
_PLAIN_IDENTIFIER: Final = re.compile(r"^\s*(\d+)\s*$")
_LOCATION_IDENTIFIER: Final = re.compile(r"(\d+)")


def _content_types(kind: AssetKind) -> dict[str, str]:
    return AUDIO_CONTENT_TYPES if kind is AssetKind.AUDIO else IMAGE_CONTENT_TYPES


def content_type_for(kind: AssetKind, extension: str) -> str:
    default = "audio/mpeg" if kind is AssetKind.AUDIO else "image/png"
    return _content_types(kind).get(extension, default)


def _parse_group_id(group_id: str | None) -> int | None:
    if group_id is None or not group_id.strip():
        return None
    try:
        return int(group_id.strip())
    except ValueError:
        log.warning("Ignoring non-numeric group id %r", group_id)
        return None


def _parse_body(response: httpx.Response) -> tuple[IngestionResponse | None, str]:
    text = response.text
    try:
        return IngestionResponse.model_validate_json(text), text
    except ValidationError:
        return None, text


def _extract_identifier(
    body: IngestionResponse | None,
    text: str,
    response: httpx.Response,
) -> str | None:
    if body is not None and (identifier := body.identifier):
        return identifier
    if match := _PLAIN_IDENTIFIER.match(text):
        return match.group(1)
    location = response.headers.get("location")
    if location and (match := _LOCATION_IDENTIFIER.search(location)):
        return match.group(1)
    return None


def _failure(
    reason: SubmissionFailureReason,
    message: str,
    response: httpx.Response | None = None,
) -> SubmissionFailed:
    status_code = response.status_code if response is not None else None
    return SubmissionFailed(reason=reason, message=message, status_code=status_code)


def _body_message(body: IngestionResponse | None, text: str, response: httpx.Response) -> str:
    if body is not None:
        error = body.first_error
        if error is not None and error.message:
            return error.message
        if body.error:
            return body.error
        if body.message:
            return body.message
    elif text.strip():
        return text.strip()[:200]
    return f"Upload failed: {response.status_code} {response.reason_phrase}".strip()


def classify_ingestion_response(response: httpx.Response) -> IngestionAttempt:
    """Turn one ingestion response into a fallback verdict."""

    if is_guest_response(response):
        return Attempt.stop(
            _failure(
                SubmissionFailureReason.AUTHENTICATION,
                "Authentication failed: the credential is invalid or expired",
                response,
            )
        )

    body, text = _parse_body(response)
    status = response.status_code

    if response.is_success:
        identifier = _extract_identifier(body, text, response)
        if identifier is not None:
            return Attempt.succeeded(identifier)

    error = body.first_error if body is not None else None
    if error is not None and error.code is not None:
        message = error.message or f"Error code {error.code}"
        reason = PLATFORM_ERROR_CODES.get(error.code)
        if reason is None:
            return Attempt.advance(
                _failure(
                    SubmissionFailureReason.GENERIC,
                    f"Error code {error.code}: {message}",
                    response,
                )
            )
        if error.code in _ADVANCING_CODES:
            return Attempt.advance(_failure(reason, message, response))
        return Attempt.stop(_failure(reason, message, response))

    if response.is_success:
        return Attempt.advance(
            _failure(
                SubmissionFailureReason.MISSING_IDENTIFIER,
                "Upload completed but no asset identifier was returned",
                response,
            )
        )
    if status in {401, 403}:
        return Attempt.stop(
            _failure(
                SubmissionFailureReason.AUTHENTICATION,
                _body_message(body, text, response),
                response,
            )
        )
    if status == 404:
        return Attempt.advance(
            _failure(SubmissionFailureReason.NOT_FOUND, "Ingestion endpoint not found", response)
        )
    if status >= 500:
        message = _body_message(body, text, response)
        if body is not None and body.is_valid is False:
            message = "The platform rejected the upload as invalid (isValid: false)"
        return Attempt.advance(_failure(SubmissionFailureReason.SERVER_FAULT, message, response))
    return Attempt.advance(
        _failure(SubmissionFailureReason.GENERIC, _body_message(body, text, response), response)
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpSubmissionNegotiator:
    config: PlatformConfig = field(default_factory=get_platform_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def submit(
        self,
        request: SubmissionRequest,
        session: SessionContext,
    ) -> SubmissionOutcome:
        rejection = self._prevalidate(request, session)
        if rejection is not None:
            return rejection

        candidates = [
            Candidate("POST", url) for url in self.config.endpoints.ingestion[request.kind]
        ]
        timeout = self.config.upload_timeouts.timeout_for(request.size_bytes)

        async with self.client_factory(self.config.publish_resilience) as client:
            await ensure_csrf_token(client, session, self.config.endpoints)
            run = await run_candidates(
                candidates,
                partial(self._attempt, client, request, session, timeout),
            )
            if run.state is not FallbackState.SUCCEEDED or run.value is None:
                return run.failure or _failure(
                    SubmissionFailureReason.GENERIC, "No ingestion endpoint accepted the upload"
                )
            asset_id = run.value
            description_attached: bool | None = None
            if request.kind is AssetKind.AUDIO and request.description and request.description.strip():
                description_attached = await self._attach_description(
                    client, asset_id, request.description.strip(), session
                )

        return SubmissionSucceeded(
            asset_id=asset_id,
            kind=request.kind,
            name=request.display_name,
            description_attached=description_attached,
        )

    def _prevalidate(
        self,
        request: SubmissionRequest,
        session: SessionContext,
    ) -> SubmissionFailed | None:
        if not session.cookie_header:
            return _failure(SubmissionFailureReason.AUTHENTICATION, "A credential is required")
        if not request.payload:
            return _failure(SubmissionFailureReason.MISSING_FILE, "The file is empty")
        if request.kind not in self.config.endpoints.ingestion:
            return _failure(
                SubmissionFailureReason.INVALID_REQUEST,
                f"No ingestion endpoint for {request.kind}",
            )
        limit = (
            self.config.audio_size_limit_bytes
            if request.kind is AssetKind.AUDIO
            else self.config.image_size_limit_bytes
        )
        if request.size_bytes > limit:
            return _failure(
                SubmissionFailureReason.FILE_TOO_LARGE,
                f"{request.kind.capitalize()} files must be at most {limit // MEGABYTE} MB",
            )
        allowed = self.config.allowed_extensions.get(request.kind)
        if allowed is None:
            if request.extension not in _content_types(request.kind):
                log.warning(
                    "Extension %r may not be supported for %s", request.extension, request.kind
                )
        elif request.extension not in allowed:
            supported = ", ".join(sorted(allowed))
            return _failure(
                SubmissionFailureReason.UNSUPPORTED_FORMAT,
                f"Unsupported {request.kind} file type; supported: {supported}",
            )
        return None

    async def _attempt(
        self,
        client: ResilientClient,
        request: SubmissionRequest,
        session: SessionContext,
        timeout: float,
        candidate: Candidate,
    ) -> IngestionAttempt:
        try:
            response = await self._send(client, candidate, request, session, timeout)
            token = rotated_csrf_token(response)
            if token is not None and token != session.csrf_token:
                log.debug("CSRF token rotated by %s, retrying once", candidate.url)
                session.remember_csrf_token(token)
                response = await self._send(client, candidate, request, session, timeout)
        except httpx.TimeoutException:
            return Attempt.advance(
                _failure(
                    SubmissionFailureReason.NETWORK_UNREACHABLE,
                    f"Upload timed out after {timeout:.0f}s",
                )
            )
        except REQUEST_ERRORS as exc:
            return Attempt.advance(
                _failure(
                    SubmissionFailureReason.NETWORK_UNREACHABLE,
                    f"Cannot reach the platform: {exc}",
                )
            )
        return classify_ingestion_response(response)

    async def _send(
        self,
        client: ResilientClient,
        candidate: Candidate,
        request: SubmissionRequest,
        session: SessionContext,
        timeout: float,
    ) -> httpx.Response:
        headers = session_headers(session)
        description = (request.description or "").strip()
        group_id = _parse_group_id(request.group_id)

        if request.kind is AssetKind.AUDIO:
            body: dict[str, object] = {
                "name": request.display_name,
                "file": base64.b64encode(request.payload).decode("ascii"),
                "estimatedFileSize": request.size_bytes,
            }
            if description:
                body["description"] = description
            if group_id is not None:
                body["groupId"] = group_id
            return await client.request(
                candidate.method, candidate.url, json=body, headers=headers, timeout=timeout
            )

        content_type = content_type_for(request.kind, request.extension)
        data = {
            "assetType": IMAGE_ASSET_TYPE_ID,
            "name": request.display_name,
            "isPublic": "false",
        }
        if description:
            data["description"] = description
        if group_id is not None:
            data["groupId"] = str(group_id)
        return await client.request(
            candidate.method,
            candidate.url,
            data=data,
            files={"file": (request.filename, request.payload, content_type)},
            headers=headers,
            timeout=timeout,
        )

    async def _attach_description(
        self,
        client: ResilientClient,
        asset_id: str,
        description: str,
        session: SessionContext,
    ) -> bool:
        headers = session_headers(session)
        headers["Origin"] = DESCRIPTION_ORIGIN
        headers["Referer"] = f"{DESCRIPTION_ORIGIN}/"
        try:
            response = await client.post(
                self.config.endpoints.description_update,
                json={"assetId": int(asset_id), "description": description},
                headers=headers,
            )
        except (*REQUEST_ERRORS, ValueError) as exc:
            log.warning("Could not attach description to asset %s: %s", asset_id, exc)
            return False
        if response.status_code != 200:
            log.warning(
                "Description update for asset %s answered %s", asset_id, response.status_code
            )
            return False
        return True


if TYPE_CHECKING:
    _submitter_check: AssetSubmitter = HttpSubmissionNegotiator()

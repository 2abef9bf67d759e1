"""Operator session context: credential cookie, CSRF token cache and identity.

A session is acquired once per logical operator session with
:func:`open_session` and released on exit. The CSRF token is cached on the
session; refetching it redundantly is harmless.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from assetwarden.adapters.http_resilience import REQUEST_ERRORS, ResilientClient
from assetwarden.config.platform import PlatformConfig, get_platform_config

from .schema import AuthenticatedUser

if TYPE_CHECKING:
    from assetwarden.config.http_resilience import ResilienceConfig
    from assetwarden.config.platform import PlatformEndpoints
    from assetwarden.domain.ports.platform import SessionContext

log = getLogger(__name__)

CREDENTIAL_COOKIE: Final[str] = ".ROBLOSECURITY"
CSRF_HEADER: Final[str] = "x-csrf-token"


class AuthenticationError(RuntimeError):
    """Raised when the platform rejects the operator credential."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PlatformUnavailableError(RuntimeError):
    """Raised when the platform cannot be reached to answer a credential check."""


def normalize_cookie_header(credential: str) -> str:
    """Build the credential cookie header; an empty credential gives ``""``.

    Raises :class:`AuthenticationError` for a value that cannot travel in a
    header, such as one with a pasted ellipsis or a zero-width space.
    """

    value = credential.strip()
    prefix = f"{CREDENTIAL_COOKIE}="
    if value.startswith(prefix):
        value = value[len(prefix) :].strip()
    if not (value.isascii() and value.isprintable()):
        raise AuthenticationError("Credential contains characters a cookie cannot carry")
    return f"{prefix}{value}" if value else ""


def is_guest_response(response: httpx.Response) -> bool:
    """True when the response downgrades the caller to a guest session."""

    return any(
        "GuestData" in cookie and "UserID=-" in cookie
        for cookie in response.headers.get_list("set-cookie")
    )


def session_headers(session: SessionContext) -> dict[str, str]:
    headers: dict[str, str] = {}
    if session.cookie_header:
        headers["Cookie"] = session.cookie_header
    if session.csrf_token:
        headers["X-CSRF-TOKEN"] = session.csrf_token
    return headers


def rotated_csrf_token(response: httpx.Response) -> str | None:
    if response.status_code != 403:
        return None
    return response.headers.get(CSRF_HEADER) or None


@dataclass(slots=True)
class PlatformSession:
    cookie_header: str
    csrf_token: str | None = None
    user: AuthenticatedUser | None = None
    released: bool = False

    @classmethod
    def from_credential(cls, credential: str) -> PlatformSession:
        return cls(cookie_header=normalize_cookie_header(credential))

    @property
    def has_credential(self) -> bool:
        return bool(self.cookie_header)

    def remember_csrf_token(self, token: str) -> None:
        self.csrf_token = token or None

    def release(self) -> None:
        self.csrf_token = None
        self.user = None
        self.released = True


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


async def fetch_csrf_token(
    client: ResilientClient,
    session: SessionContext,
    endpoints: PlatformEndpoints,
) -> str | None:
    """Ask the platform for a CSRF token; a missing token is tolerated."""

    try:
        response = await client.post(
            endpoints.csrf,
            headers={"Cookie": session.cookie_header},
            json={},
        )
    except REQUEST_ERRORS as exc:
        log.warning("Could not fetch CSRF token: %s", exc)
        return None
    token = response.headers.get(CSRF_HEADER)
    if not token:
        log.debug("CSRF endpoint answered %s without a token", response.status_code)
        return None
    session.remember_csrf_token(token)
    return token


async def ensure_csrf_token(
    client: ResilientClient,
    session: SessionContext,
    endpoints: PlatformEndpoints,
) -> str | None:
    if session.csrf_token:
        return session.csrf_token
    return await fetch_csrf_token(client, session, endpoints)


async def verify_credential(
    session: PlatformSession,
    *,
    config: PlatformConfig | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
) -> AuthenticatedUser:
    if not session.has_credential:
        raise AuthenticationError("Credential is empty")
    platform = config or get_platform_config()
    async with client_factory(platform.account_resilience) as client:
        try:
            response = await client.get(
                platform.endpoints.identity,
                headers={"Cookie": session.cookie_header},
            )
        except REQUEST_ERRORS as exc:
            raise PlatformUnavailableError(f"Identity check failed: {exc}") from exc

    if response.status_code in {401, 403}:
        raise AuthenticationError(
            "Credential is invalid or expired", status_code=response.status_code
        )
    if response.status_code != 200:
        raise PlatformUnavailableError(
            f"Unexpected identity response: {response.status_code}"
        )
    try:
        user = AuthenticatedUser.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise AuthenticationError(
            "Identity response did not name a user", status_code=response.status_code
        ) from exc
    session.user = user
    log.info("Credential verified for user %s", user.id)
    return user


@asynccontextmanager
async def open_session(
    credential: str,
    *,
    verify: bool = False,
    config: PlatformConfig | None = None,
    client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
) -> AsyncIterator[PlatformSession]:
    session = PlatformSession.from_credential(credential)
    if verify:
        await verify_credential(session, config=config, client_factory=client_factory)
    try:
        yield session
    finally:
        session.release()

"""Remote platform configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import optional_env_var, require_env_var
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig, RetryPolicy

BROWSER_USER_AGENT: Final[str] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)
PUBLISHER_USER_AGENT: Final[str] = "Roblox/WinInet"
CREATOR_ORIGIN: Final[str] = "https://create.roblox.com"

MEGABYTE: Final[int] = 1024 * 1024
AUDIO_SIZE_LIMIT_BYTES: Final[int] = 20 * MEGABYTE
IMAGE_SIZE_LIMIT_BYTES: Final[int] = 20 * MEGABYTE
IMAGE_EXTENSIONS: Final[frozenset[str]] = frozenset({"png", "jpg", "jpeg", "gif", "bmp"})


@dataclass(frozen=True, slots=True)
class PlatformEndpoints:
    """Every remote URL the engine talks to.

    Templates use ``{asset_id}`` / ``{owner_id}`` placeholders. Ingestion and
    withdrawal hold ordered candidate lists; the first entry is tried first.
    """

    asset_delivery: str = "https://assetdelivery.roblox.com/v2/assetId/{asset_id}"
    catalog_details: str = "https://catalog.roblox.com/v1/catalog/items/details"
    listing_page: str = "https://www.roblox.com/library/{asset_id}"
    csrf: str = "https://auth.roblox.com/v2/logout"
    identity: str = "https://users.roblox.com/v1/users/authenticated"
    ingestion: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: {
            "audio": ("https://publish.roblox.com/v1/audio",),
            "image": ("https://apis.roblox.com/assets/v1/upload",),
        }
    )
    description_update: str = "https://www.roblox.com/asset/update"
    withdrawal: tuple[str, ...] = (
        "https://www.roblox.com/asset/delete/{asset_id}",
        "https://www.roblox.com/asset/{asset_id}/delete",
        "https://assetdelivery.roblox.com/v1/asset/{asset_id}",
    )
    user_inventory: str = "https://create.roblox.com/v1/users/{owner_id}/assets"
    group_inventory: str = "https://create.roblox.com/v1/groups/{owner_id}/assets"


@dataclass(frozen=True, slots=True)
class ProbeTimeouts:
    anonymous_delivery: float = 10.0
    authenticated_delivery: float = 10.0
    catalog: float = 3.0
    listing_page: float = 5.0

    @property
    def worst_case(self) -> float:
        return (
            self.anonymous_delivery
            + self.authenticated_delivery
            + self.catalog
            + self.listing_page
        )


@dataclass(frozen=True, slots=True)
class UploadTimeoutPolicy:
    """Upload timeout scaled by payload size, clamped to ``[minimum, maximum]``."""

    seconds_per_megabyte: float = 5.0
    minimum_seconds: float = 60.0
    maximum_seconds: float = 600.0

    def timeout_for(self, size_bytes: int) -> float:
        scaled = (size_bytes / MEGABYTE) * self.seconds_per_megabyte
        return min(max(self.minimum_seconds, scaled), self.maximum_seconds)


def _platform_ratelimit() -> RateLimit:
    return RateLimit(max_calls=10, per_seconds=1.0)


@dataclass(frozen=True, slots=True)
class PlatformConfig:
    endpoints: PlatformEndpoints = field(default_factory=PlatformEndpoints)
    probe_timeouts: ProbeTimeouts = field(default_factory=ProbeTimeouts)
    upload_timeouts: UploadTimeoutPolicy = field(default_factory=UploadTimeoutPolicy)
    audio_size_limit_bytes: int = AUDIO_SIZE_LIMIT_BYTES
    image_size_limit_bytes: int = IMAGE_SIZE_LIMIT_BYTES
    # keyed by asset kind; a kind without an entry accepts any extension
    allowed_extensions: dict[str, frozenset[str]] = field(
        default_factory=lambda: {"image": IMAGE_EXTENSIONS}
    )
    probe_resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="platform-probe",
            timeout_seconds=10.0,
            retry=NO_RETRY,
            ratelimit=_platform_ratelimit(),
            default_headers={"User-Agent": BROWSER_USER_AGENT},
        )
    )
    publish_resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="platform-publish",
            timeout_seconds=60.0,
            retry=NO_RETRY,
            ratelimit=_platform_ratelimit(),
            default_headers={
                "User-Agent": PUBLISHER_USER_AGENT,
                "Origin": CREATOR_ORIGIN,
                "Referer": f"{CREATOR_ORIGIN}/",
            },
        )
    )
    withdrawal_resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="platform-withdrawal",
            timeout_seconds=10.0,
            retry=NO_RETRY,
            ratelimit=_platform_ratelimit(),
            default_headers={"User-Agent": BROWSER_USER_AGENT},
        )
    )
    account_resilience: ResilienceConfig = field(
        default_factory=lambda: ResilienceConfig(
            name="platform-account",
            timeout_seconds=10.0,
            retry=RetryPolicy(total=2),
            ratelimit=_platform_ratelimit(),
            default_headers={"User-Agent": BROWSER_USER_AGENT},
        )
    )


def get_platform_config() -> PlatformConfig:
    return PlatformConfig()


def get_credential() -> str:
    """Return the operator session credential from ``ASSETWARDEN_CREDENTIAL``."""

    return require_env_var("ASSETWARDEN_CREDENTIAL")


def get_default_group_id() -> str | None:
    return optional_env_var("ASSETWARDEN_GROUP_ID")


def get_optional_credential() -> str | None:
    return optional_env_var("ASSETWARDEN_CREDENTIAL")

"""Refresh scheduler defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_env_var

DEFAULT_REFRESH_INTERVAL_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class RefreshConfig:
    interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS


def get_refresh_config() -> RefreshConfig:
    return RefreshConfig(
        interval_seconds=float_env_var(
            "ASSETWARDEN_REFRESH_INTERVAL", DEFAULT_REFRESH_INTERVAL_SECONDS
        )
    )

"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import NO_RETRY, CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .platform import (
    AUDIO_SIZE_LIMIT_BYTES,
    PlatformConfig,
    PlatformEndpoints,
    ProbeTimeouts,
    UploadTimeoutPolicy,
    get_credential,
    get_default_group_id,
    get_optional_credential,
    get_platform_config,
)
from .refresh import RefreshConfig, get_refresh_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AUDIO_SIZE_LIMIT_BYTES",
    "NO_RETRY",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "PlatformConfig",
    "PlatformEndpoints",
    "ProbeTimeouts",
    "RateLimit",
    "RefreshConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "UploadTimeoutPolicy",
    "configure_logging",
    "get_credential",
    "get_database_config",
    "get_default_group_id",
    "get_optional_credential",
    "get_platform_config",
    "get_refresh_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]

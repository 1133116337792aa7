"""Configuration management for photojournal.

Values come from environment variables first and from Streamlit secrets as a
fallback, cast to the requested type and cached per key.
"""

import os
from typing import Any

import streamlit as st

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_UPLOAD_CONCURRENCY = 4
DEFAULT_MAX_FILES = 10
UPLOAD_PAGE_MAX_FILES = 20


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self):
        self._cache = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from environment variables or Streamlit secrets.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = os.getenv(key)

        if value is None:
            try:
                value = st.secrets.get(key)
            except Exception:  # nosec B110
                # No secrets.toml, or not running inside Streamlit
                pass

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower().strip()
        return environment in ["development", "dev", "local", "test"]

    def is_production(self) -> bool:
        """Check if running in production mode."""
        environment = self.get("ENVIRONMENT", "development").lower().strip()
        return environment in ["production", "prod"]

    def clear_cache(self):
        """Clear configuration cache."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get a configuration value with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get a required configuration value.

    Raises:
        ValueError: If the value is not configured
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def is_production() -> bool:
    """Check if running in production mode."""
    return get_config().is_production()


def get_environment() -> str:
    return str(get_env("ENVIRONMENT", "development"))


def get_storage_backend() -> str:
    """Blob store backend: ``gcs`` or ``memory``."""
    return str(get_env("STORAGE_BACKEND", "gcs")).lower()


def get_project_id() -> str:
    return str(get_required_env("GOOGLE_CLOUD_PROJECT"))


def get_photos_bucket() -> str:
    return str(get_required_env("GCS_PHOTOS_BUCKET"))


def get_public_base_url() -> str | None:
    """Base URL objects are served from, e.g. a CDN in front of the bucket."""
    value = get_env("PUBLIC_BASE_URL")
    return str(value).rstrip("/") if value else None


def get_iap_audience() -> str | None:
    """Expected ``aud`` claim of Cloud IAP signed headers."""
    value = get_env("IAP_AUDIENCE")
    return str(value) if value else None


def get_max_upload_bytes() -> int:
    return int(get_env("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, int))


def get_upload_concurrency() -> int:
    return max(1, int(get_env("UPLOAD_CONCURRENCY", DEFAULT_UPLOAD_CONCURRENCY, int)))


def get_max_files() -> int:
    return max(1, int(get_env("MAX_FILES", DEFAULT_MAX_FILES, int)))


def get_debug_mode() -> bool:
    return get_env("DEBUG", False, bool) or is_development()


def get_api_host() -> str:
    return str(get_env("API_HOST", "0.0.0.0"))  # nosec B104


def get_api_port() -> int:
    return int(get_env("API_PORT", 8000, int))


def get_cors_origins() -> list[str]:
    """Comma-separated CORS origins; ``*`` allows any origin."""
    value = str(get_env("CORS_ORIGINS", "*"))
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def get_api_url() -> str | None:
    """Remote photojournal API used by the UI instead of direct storage access, if set."""
    value = get_env("API_URL")
    return str(value).rstrip("/") if value else None

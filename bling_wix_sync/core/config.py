"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the sync services and the
command-line runner share one configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class BlingSettings(BaseSettings):
    """Credentials and endpoints for the Bling ERP API."""

    model_config = _SETTINGS_CONFIG

    client_id: Optional[str] = Field(None, validation_alias="BLING_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="BLING_CLIENT_SECRET")
    redirect_uri: Optional[str] = Field(None, validation_alias="BLING_REDIRECT_URI")
    refresh_token: Optional[str] = Field(
        None,
        validation_alias="BLING_REFRESH_TOKEN",
        description=(
            "Bootstrap refresh token. Ignored once a rotated token has been persisted."
        ),
    )
    api_base_url: str = Field(
        "https://www.bling.com.br/Api/v3", validation_alias="BLING_API_BASE_URL"
    )
    token_url: str = Field(
        "https://www.bling.com.br/Api/v3/oauth/token", validation_alias="BLING_TOKEN_URL"
    )
    authorize_url: str = Field(
        "https://www.bling.com.br/Api/v3/oauth/authorize",
        validation_alias="BLING_AUTHORIZE_URL",
    )


class WixSettings(BaseSettings):
    """Settings for the Wix stock ingestion endpoint."""

    model_config = _SETTINGS_CONFIG

    ingest_url: Optional[str] = Field(
        None,
        validation_alias="WIX_INGEST_URL",
        description="HTTP function on the Wix site that receives stock batches.",
    )


class SyncSettings(BaseSettings):
    """Pacing, retry and cache tuning for synchronization runs."""

    model_config = _SETTINGS_CONFIG

    page_size: int = Field(100, validation_alias="SYNC_PAGE_SIZE", gt=0)
    batch_size: int = Field(100, validation_alias="SYNC_BATCH_SIZE", gt=0)
    page_delay_seconds: float = Field(0.4, validation_alias="SYNC_PAGE_DELAY")
    batch_delay_seconds: float = Field(1.0, validation_alias="SYNC_BATCH_DELAY")
    retry_attempts: int = Field(3, validation_alias="SYNC_RETRY_ATTEMPTS", ge=1)
    retry_base_delay_seconds: float = Field(1.0, validation_alias="SYNC_RETRY_BASE_DELAY")
    retry_backoff_factor: float = Field(2.0, validation_alias="SYNC_RETRY_BACKOFF_FACTOR")
    failure_threshold: int = Field(3, validation_alias="SYNC_FAILURE_THRESHOLD", ge=1)
    degraded_failure_threshold: int = Field(
        5, validation_alias="SYNC_DEGRADED_FAILURE_THRESHOLD", ge=1
    )
    connectivity_precheck: bool = Field(True, validation_alias="SYNC_CONNECTIVITY_PRECHECK")
    max_pages: int = Field(1000, validation_alias="SYNC_MAX_PAGES", gt=0)
    cache_ttl_seconds: int = Field(600, validation_alias="STOCK_CACHE_TTL")
    request_timeout_seconds: float = Field(10.0, validation_alias="HTTP_TIMEOUT")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _SETTINGS_CONFIG

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _SETTINGS_CONFIG

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _SETTINGS_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    token_db_path: str = Field("data/tokens.db", validation_alias="TOKEN_DB_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    bling: BlingSettings = Field(default_factory=BlingSettings)
    wix: WixSettings = Field(default_factory=WixSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "BlingSettings",
    "OAuthSettings",
    "SecuritySettings",
    "SyncSettings",
    "WixSettings",
    "get_settings",
]

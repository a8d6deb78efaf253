"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_bling_oauth_client,
    get_bling_token_service,
    get_oauth_state_encoder,
    get_product_fetcher,
    get_retry_policy,
    get_stock_cache,
    get_sync_orchestrator,
    get_token_cipher_service,
    get_token_repository,
    get_token_store,
    get_wix_publisher,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_bling_oauth_client",
    "get_bling_token_service",
    "get_oauth_state_encoder",
    "get_product_fetcher",
    "get_retry_policy",
    "get_stock_cache",
    "get_sync_orchestrator",
    "get_token_cipher_service",
    "get_token_repository",
    "get_token_store",
    "get_wix_publisher",
]

"""
Factory functions providing the process-wide clients and services.

Token and cache state must be shared by every request, so each factory is
cached for the life of the process.
"""

from functools import lru_cache

from bling_wix_sync.clients import (
    BlingOAuthClient,
    BlingProductsClient,
    OAuthStateEncoder,
    SQLiteTokenRepository,
    WixIngestionClient,
)
from bling_wix_sync.core.config import get_settings
from bling_wix_sync.core.errors import ConfigError
from bling_wix_sync.services import (
    BlingTokenService,
    ProductFetcher,
    StockCache,
    SyncOrchestrator,
    TokenCipherService,
    TokenStore,
    WixPublisher,
)
from bling_wix_sync.utils.http import RetryPolicy


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def _secret() -> str | None:
    settings = _settings()
    return settings.security.token_encryption_secret or settings.bling.client_secret


@lru_cache()
def get_retry_policy() -> RetryPolicy:
    """Provide the retry policy shared by the fetcher and the publisher."""
    return RetryPolicy.from_settings(_settings().sync)


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the encryption secret."""
    secret = _secret()
    if not secret:
        raise ConfigError(
            "TOKEN_ENCRYPTION_SECRET or BLING_CLIENT_SECRET is required to sign OAuth state."
        )
    return OAuthStateEncoder(secret, ttl_seconds=_settings().oauth.state_ttl_seconds)


@lru_cache()
def get_bling_oauth_client() -> BlingOAuthClient:
    """Create a singleton Bling OAuth client."""
    settings = _settings()
    return BlingOAuthClient(
        settings.bling, timeout=settings.sync.request_timeout_seconds
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService | None:
    """Provide symmetric encryption for token storage when a secret exists."""
    secret = _secret()
    if not secret:
        return None
    return TokenCipherService(secret=secret)


@lru_cache()
def get_token_repository() -> SQLiteTokenRepository:
    """Provide the SQLite table holding the encrypted token pair."""
    return SQLiteTokenRepository(_settings().token_db_path)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the process-wide token pair holder."""
    return TokenStore(
        repository=get_token_repository(),
        cipher=get_token_cipher_service(),
        bootstrap_refresh_token=_settings().bling.refresh_token,
    )


@lru_cache()
def get_bling_token_service() -> BlingTokenService:
    """Provide helper for handing out and rotating Bling tokens."""
    return BlingTokenService(get_token_store(), get_bling_oauth_client())


@lru_cache()
def get_product_fetcher() -> ProductFetcher:
    """Provide the paginating catalog fetcher."""
    settings = _settings()
    client = BlingProductsClient(
        settings.bling,
        retry_policy=get_retry_policy(),
        timeout=settings.sync.request_timeout_seconds,
    )
    return ProductFetcher(
        client,
        page_size=settings.sync.page_size,
        page_delay_seconds=settings.sync.page_delay_seconds,
        retry_policy=get_retry_policy(),
        failure_threshold=settings.sync.failure_threshold,
        degraded_failure_threshold=settings.sync.degraded_failure_threshold,
        connectivity_precheck=settings.sync.connectivity_precheck,
        max_pages=settings.sync.max_pages,
    )


@lru_cache()
def get_wix_publisher() -> WixPublisher:
    """Provide the batching Wix publisher."""
    settings = _settings()
    client = WixIngestionClient(
        settings.wix,
        retry_policy=get_retry_policy(),
        timeout=settings.sync.request_timeout_seconds,
    )
    return WixPublisher(
        client,
        batch_size=settings.sync.batch_size,
        batch_delay_seconds=settings.sync.batch_delay_seconds,
    )


@lru_cache()
def get_stock_cache() -> StockCache:
    """Provide the last-known-good catalog cache."""
    return StockCache(ttl_seconds=_settings().sync.cache_ttl_seconds)


@lru_cache()
def get_sync_orchestrator() -> SyncOrchestrator:
    """Provide the single orchestrator guarding against overlapping runs."""
    return SyncOrchestrator(
        token_service=get_bling_token_service(),
        fetcher=get_product_fetcher(),
        publisher=get_wix_publisher(),
        cache=get_stock_cache(),
    )


__all__ = [
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

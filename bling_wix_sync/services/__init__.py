"""Service layer exports."""

from .bling_tokens import BlingTokenService
from .product_fetcher import ProductFetcher, normalize_product
from .stock_cache import StockCache
from .sync_orchestrator import SyncOrchestrator
from .token_cipher import TokenCipherService
from .token_store import TokenStore
from .wix_publisher import WixPublisher, chunk_records

__all__ = [
    "BlingTokenService",
    "ProductFetcher",
    "StockCache",
    "SyncOrchestrator",
    "TokenCipherService",
    "TokenStore",
    "WixPublisher",
    "chunk_records",
    "normalize_product",
]

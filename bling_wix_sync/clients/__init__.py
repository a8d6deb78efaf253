"""Expose constructed client wrappers."""

from .bling_auth import BlingOAuthClient, OAuthStateEncoder
from .bling_products import BlingProductsClient
from .sqlite_store import SQLiteTokenRepository
from .wix_ingest import WixIngestionClient

__all__ = [
    "BlingOAuthClient",
    "BlingProductsClient",
    "OAuthStateEncoder",
    "SQLiteTokenRepository",
    "WixIngestionClient",
]

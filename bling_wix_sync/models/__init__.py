"""Domain models exported for services and clients."""

from .oauth import StoredTokenRecord, TokenPair
from .stock import CacheEntry, StockRecord

__all__ = ["CacheEntry", "StockRecord", "StoredTokenRecord", "TokenPair"]

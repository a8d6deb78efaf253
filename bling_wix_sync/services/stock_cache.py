"""In-memory fallback for the last successful catalog fetch."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from bling_wix_sync.core.clock import Clock, default_clock
from bling_wix_sync.models import CacheEntry, StockRecord


class StockCache:
    """Hold the last known-good stock list.

    ``get`` honours the TTL; ``get_stale`` ignores it and is meant only as a
    last resort when a live fetch produced nothing.
    """

    def __init__(self, *, ttl_seconds: float = 600, clock: Clock = default_clock) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None

    def put(self, records: Sequence[StockRecord]) -> None:
        self._entry = CacheEntry(records=list(records), captured_at=self._clock())

    def get(self) -> Optional[List[StockRecord]]:
        entry = self._entry
        if entry is None or entry.age(self._clock()) >= self._ttl:
            return None
        return list(entry.records)

    def get_stale(self) -> Optional[List[StockRecord]]:
        entry = self._entry
        if entry is None:
            return None
        return list(entry.records)

    def describe(self) -> Dict[str, object]:
        """Size and age summary for status reporting."""
        entry = self._entry
        if entry is None:
            return {"records": None, "age_seconds": None, "fresh": False}
        age = entry.age(self._clock())
        return {
            "records": len(entry.records),
            "age_seconds": round(age, 3),
            "fresh": age < self._ttl,
        }


__all__ = ["StockCache"]

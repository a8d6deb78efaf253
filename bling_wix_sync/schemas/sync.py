"""
Pydantic models describing fetch and synchronization outcomes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from bling_wix_sync.models import StockRecord


class SyncState(str, Enum):
    """Lifecycle of a single synchronization run."""

    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    FETCHING = "fetching"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


class SyncOutcome(str, Enum):
    """Caller-facing verdict; partial success is never folded into pass/fail."""

    SUCCESS = "success"
    PARTIAL = "partial"
    NOTHING_TO_SYNC = "nothing_to_sync"
    FAILED = "failed"


class RecordSource(str, Enum):
    LIVE = "live"
    CACHE = "cache"
    STALE_CACHE = "stale_cache"


class FetchResult(BaseModel):
    """Records accumulated by a pagination run plus page statistics."""

    records: List[StockRecord] = Field(default_factory=list)
    pages_fetched: int = 0
    pages_failed: int = 0
    aborted: bool = Field(
        False, description="True when the consecutive-failure breaker tripped."
    )
    degraded: bool = Field(
        False, description="True when the connectivity pre-check failed."
    )


class BatchResult(BaseModel):
    """Delivery outcome of one chunk sent to Wix."""

    batch_index: int
    item_count: int
    succeeded: bool
    http_status: Optional[int] = None
    error: Optional[str] = None


class SyncReport(BaseModel):
    """Aggregate result of a publish call or of a whole synchronization run."""

    outcome: SyncOutcome = SyncOutcome.SUCCESS
    state: SyncState = SyncState.DONE
    source: Optional[RecordSource] = None
    total_records: int = 0
    pages_fetched: int = 0
    pages_failed: int = 0
    batches_sent: int = 0
    batches_failed: int = 0
    records_confirmed: int = 0
    batches: List[BatchResult] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class SyncStatusResponse(BaseModel):
    """Payload returned by the status route."""

    state: SyncState
    running: bool
    last_report: Optional[SyncReport] = None
    cache_records: Optional[int] = None
    cache_age_seconds: Optional[float] = None
    cache_fresh: bool = False


__all__ = [
    "BatchResult",
    "FetchResult",
    "RecordSource",
    "SyncOutcome",
    "SyncReport",
    "SyncState",
    "SyncStatusResponse",
]

"""Public schema exports."""

from .auth import AuthorizationStart
from .sync import (
    BatchResult,
    FetchResult,
    RecordSource,
    SyncOutcome,
    SyncReport,
    SyncState,
    SyncStatusResponse,
)

__all__ = [
    "AuthorizationStart",
    "BatchResult",
    "FetchResult",
    "RecordSource",
    "SyncOutcome",
    "SyncReport",
    "SyncState",
    "SyncStatusResponse",
]

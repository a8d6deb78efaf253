"""
One synchronization run: authenticate, fetch the catalog, publish to Wix.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from bling_wix_sync.core.errors import (
    AuthError,
    ConfigError,
    FetchError,
    SyncError,
    SyncInProgressError,
)
from bling_wix_sync.models import StockRecord
from bling_wix_sync.schemas import (
    RecordSource,
    SyncOutcome,
    SyncReport,
    SyncState,
)
from bling_wix_sync.services.bling_tokens import BlingTokenService
from bling_wix_sync.services.product_fetcher import ProductFetcher
from bling_wix_sync.services.stock_cache import StockCache
from bling_wix_sync.services.wix_publisher import WixPublisher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """Compose token handling, catalog fetch and publishing into one run.

    Runs never overlap: a second trigger while one is active raises
    ``SyncInProgressError`` instead of queueing, so the token pair and the
    cache only ever have one writer.
    """

    def __init__(
        self,
        *,
        token_service: BlingTokenService,
        fetcher: ProductFetcher,
        publisher: WixPublisher,
        cache: StockCache,
    ) -> None:
        self._tokens = token_service
        self._fetcher = fetcher
        self._publisher = publisher
        self._cache = cache
        self._lock = asyncio.Lock()
        self._state = SyncState.IDLE
        self._last_report: Optional[SyncReport] = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @property
    def last_report(self) -> Optional[SyncReport]:
        return self._last_report

    @property
    def cache(self) -> StockCache:
        return self._cache

    async def run(self) -> SyncReport:
        """Execute one run and return its report; failures are reported, not raised."""
        if self._lock.locked():
            raise SyncInProgressError("A synchronization run is already in progress.")
        async with self._lock:
            try:
                report = await self._run()
            except Exception:
                self._state = SyncState.FAILED
                logger.exception("Synchronization run crashed")
                raise
            self._last_report = report
            logger.info(
                "Sync finished: outcome=%s records=%s confirmed=%s batches_failed=%s",
                report.outcome.value,
                report.total_records,
                report.records_confirmed,
                report.batches_failed,
            )
            return report

    async def _run(self) -> SyncReport:
        started_at = _utcnow()

        self._state = SyncState.AUTHENTICATING
        try:
            access_token = await self._tokens.ensure_valid_token()
        except (ConfigError, AuthError) as exc:
            return self._failed(exc, started_at=started_at)

        self._state = SyncState.FETCHING
        source = RecordSource.LIVE
        pages_fetched = 0
        pages_failed = 0
        try:
            result = await self._fetcher.fetch_catalog(
                access_token, refresh_access_token=self._tokens.refresh
            )
        except ConfigError as exc:
            return self._failed(exc, started_at=started_at)
        except (FetchError, AuthError) as exc:
            # invalid_grant never falls back to the cache.
            if isinstance(exc, AuthError) and exc.is_invalid_grant:
                return self._failed(exc, started_at=started_at)
            pages_failed = getattr(exc, "pages_failed", 0)
            records, source = self._fallback_records()
            if not records:
                return self._failed(exc, started_at=started_at, pages_failed=pages_failed)
            logger.warning(
                "Live fetch failed (%s); publishing %s records from %s",
                exc,
                len(records),
                source.value,
            )
        else:
            records = result.records
            pages_fetched = result.pages_fetched
            pages_failed = result.pages_failed
            if records:
                self._cache.put(records)

        if not records:
            self._state = SyncState.DONE
            logger.info("Bling returned an empty catalog; nothing to sync")
            return SyncReport(
                outcome=SyncOutcome.NOTHING_TO_SYNC,
                state=SyncState.DONE,
                source=source,
                pages_fetched=pages_fetched,
                started_at=started_at,
                finished_at=_utcnow(),
            )

        self._state = SyncState.PUBLISHING
        try:
            published = await self._publisher.publish(records)
        except ConfigError as exc:
            return self._failed(
                exc,
                started_at=started_at,
                source=source,
                total_records=len(records),
                pages_fetched=pages_fetched,
                pages_failed=pages_failed,
            )

        outcome = published.outcome
        degraded_input = pages_failed > 0 or source is not RecordSource.LIVE
        if outcome is SyncOutcome.SUCCESS and degraded_input:
            outcome = SyncOutcome.PARTIAL

        self._state = SyncState.DONE
        return published.model_copy(
            update={
                "outcome": outcome,
                "state": SyncState.DONE,
                "source": source,
                "pages_fetched": pages_fetched,
                "pages_failed": pages_failed,
                "started_at": started_at,
                "finished_at": _utcnow(),
            }
        )

    def _fallback_records(self) -> tuple[Optional[List[StockRecord]], RecordSource]:
        fresh = self._cache.get()
        if fresh:
            return fresh, RecordSource.CACHE
        return self._cache.get_stale(), RecordSource.STALE_CACHE

    def _failed(
        self,
        exc: SyncError,
        *,
        started_at: datetime,
        source: Optional[RecordSource] = None,
        total_records: int = 0,
        pages_fetched: int = 0,
        pages_failed: int = 0,
    ) -> SyncReport:
        self._state = SyncState.FAILED
        logger.error("Sync failed during %s: %s", self._phase_of(exc), exc)
        return SyncReport(
            outcome=SyncOutcome.FAILED,
            state=SyncState.FAILED,
            source=source,
            total_records=total_records,
            pages_fetched=pages_fetched,
            pages_failed=pages_failed,
            error=str(exc),
            error_type=exc.error_type,
            started_at=started_at,
            finished_at=_utcnow(),
        )

    @staticmethod
    def _phase_of(exc: SyncError) -> str:
        if isinstance(exc, FetchError):
            return "fetch"
        if isinstance(exc, AuthError):
            return "authentication"
        return "configuration"


__all__ = ["SyncOrchestrator"]

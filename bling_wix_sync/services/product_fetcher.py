"""
Pagination over the Bling product catalog.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from bling_wix_sync.clients.bling_products import BlingProductsClient
from bling_wix_sync.core.errors import AccessTokenRejectedError, FetchError
from bling_wix_sync.models import StockRecord
from bling_wix_sync.schemas import FetchResult
from bling_wix_sync.utils.http import RetryPolicy, Sleeper, describe_http_error

logger = logging.getLogger(__name__)

TokenRefresher = Callable[[], Awaitable[str]]


def normalize_product(product: Dict[str, Any]) -> StockRecord:
    """Map a raw Bling entry to a stock record, flooring negative balances."""
    return StockRecord.from_bling(product)


def _normalize_page(page: int, entries: List[Dict[str, Any]]) -> List[StockRecord]:
    """Normalize a page, dropping entries that cannot become a stock record."""
    records: List[StockRecord] = []
    for entry in entries:
        try:
            records.append(normalize_product(entry))
        except ValidationError as exc:
            logger.warning(
                "Skipping product %r on page %s: %s",
                entry.get("codigo"),
                page,
                "; ".join(error["msg"] for error in exc.errors()),
            )
    return records


class ProductFetcher:
    """Walk ``GET /produtos`` page by page, tolerating transient failures.

    Pages are requested in increasing order. A page shorter than the page size
    ends the walk. A page that fails every retry is skipped; once
    ``failure_threshold`` pages fail in a row the walk stops and whatever was
    accumulated is returned.
    """

    def __init__(
        self,
        client: BlingProductsClient,
        *,
        page_size: int = 100,
        page_delay_seconds: float = 0.4,
        retry_policy: RetryPolicy | None = None,
        failure_threshold: int = 3,
        degraded_failure_threshold: int = 5,
        connectivity_precheck: bool = True,
        max_pages: int = 1000,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._page_size = page_size
        self._page_delay = page_delay_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._failure_threshold = failure_threshold
        self._degraded_threshold = degraded_failure_threshold
        self._precheck = connectivity_precheck
        self._max_pages = max_pages
        self._sleep = sleep

    @property
    def error_delay_seconds(self) -> float:
        """Pause after a page has exhausted its retries."""
        return self._retry_policy.delay_for(self._retry_policy.max_attempts)

    async def fetch_all(
        self,
        access_token: str,
        *,
        refresh_access_token: Optional[TokenRefresher] = None,
    ) -> List[StockRecord]:
        result = await self.fetch_catalog(
            access_token, refresh_access_token=refresh_access_token
        )
        return result.records

    async def fetch_catalog(
        self,
        access_token: str,
        *,
        refresh_access_token: Optional[TokenRefresher] = None,
    ) -> FetchResult:
        """
        Fetch the whole catalog and return records with page statistics.

        When ``refresh_access_token`` is given, a 401 triggers one refresh and
        one retry of the rejected request; a second 401 propagates.

        Raises ``FetchError`` when no records were obtained and at least one
        page failed. An empty catalog returns an empty result.
        """
        token = access_token
        refreshed = False

        async def on_unauthorized(exc: AccessTokenRejectedError) -> str:
            nonlocal refreshed
            if refreshed or refresh_access_token is None:
                raise exc
            refreshed = True
            logger.info("Bling rejected the access token; refreshing once")
            return await refresh_access_token()

        degraded = False
        if self._precheck:
            try:
                healthy = await self._client.probe(access_token=token)
            except AccessTokenRejectedError as exc:
                token = await on_unauthorized(exc)
                healthy = await self._client.probe(access_token=token)
            degraded = not healthy

        threshold = self._degraded_threshold if degraded else self._failure_threshold
        if degraded:
            logger.warning(
                "Bling connectivity looks degraded; tolerating %s consecutive page failures",
                threshold,
            )

        records: List[StockRecord] = []
        pages_fetched = 0
        pages_failed = 0
        consecutive_failures = 0
        aborted = False
        page = 1

        while page <= self._max_pages:
            try:
                entries = await self._client.list_products(
                    access_token=token, page=page, page_size=self._page_size
                )
            except AccessTokenRejectedError as exc:
                token = await on_unauthorized(exc)
                continue
            except httpx.HTTPError as exc:
                pages_failed += 1
                consecutive_failures += 1
                logger.warning(
                    "Page %s failed after %s attempts (%s); %s consecutive failures",
                    page,
                    self._retry_policy.max_attempts,
                    describe_http_error(exc),
                    consecutive_failures,
                )
                if consecutive_failures >= threshold:
                    aborted = True
                    logger.error(
                        "Stopping pagination at page %s after %s consecutive failures",
                        page,
                        consecutive_failures,
                    )
                    break
                page += 1
                await self._sleep(self.error_delay_seconds)
                continue

            consecutive_failures = 0
            pages_fetched += 1
            records.extend(_normalize_page(page, entries))
            logger.debug("Page %s returned %s products", page, len(entries))

            if len(entries) < self._page_size:
                break
            page += 1
            await self._sleep(self._page_delay)
        else:
            logger.warning("Reached the %s page safety limit", self._max_pages)

        if not records and pages_failed:
            raise FetchError(
                f"No products obtained from Bling; {pages_failed} page(s) failed.",
                pages_failed=pages_failed,
            )

        logger.info(
            "Fetched %s products from %s page(s), %s page(s) failed%s",
            len(records),
            pages_fetched,
            pages_failed,
            " (aborted early)" if aborted else "",
        )
        return FetchResult(
            records=records,
            pages_fetched=pages_fetched,
            pages_failed=pages_failed,
            aborted=aborted,
            degraded=degraded,
        )


__all__ = ["ProductFetcher", "TokenRefresher", "normalize_product"]

"""
Chunked delivery of stock records to Wix.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from bling_wix_sync.clients.wix_ingest import WixIngestionClient
from bling_wix_sync.core.errors import PublishError
from bling_wix_sync.models import StockRecord
from bling_wix_sync.schemas import BatchResult, SyncOutcome, SyncReport
from bling_wix_sync.utils.http import Sleeper, describe_http_error

logger = logging.getLogger(__name__)

_SUCCESS_FLAGS = ("success", "sucesso", "ok")
_ERROR_FIELDS = ("error", "erro", "message", "mensagem")


def chunk_records(
    records: Sequence[StockRecord], size: int
) -> List[List[StockRecord]]:
    """Split records into consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [list(records[start:start + size]) for start in range(0, len(records), size)]


def _acknowledged(response: httpx.Response) -> Tuple[bool, Optional[str]]:
    """Decide whether Wix accepted a batch it answered with a 2xx."""
    try:
        body: Any = response.json()
    except ValueError:
        content_type = response.headers.get("content-type", "unknown")
        return False, f"Non-JSON response body ({content_type})"

    if not isinstance(body, (dict, list)) and not body:
        return False, f"Receiver answered {body!r}"

    if isinstance(body, dict):
        for flag in _SUCCESS_FLAGS:
            if flag in body:
                if body[flag]:
                    return True, None
                detail = next(
                    (str(body[field]) for field in _ERROR_FIELDS if body.get(field)),
                    "receiver reported failure",
                )
                return False, detail
    return True, None


class WixPublisher:
    """Deliver stock lists in bounded, sequential batches.

    A failed batch is recorded and the remaining batches are still sent.
    """

    def __init__(
        self,
        client: WixIngestionClient,
        *,
        batch_size: int = 100,
        batch_delay_seconds: float = 1.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._client = client
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._sleep = sleep

    async def publish(self, records: Sequence[StockRecord]) -> SyncReport:
        """Send every record and return the aggregate delivery report."""
        if not records:
            return SyncReport(outcome=SyncOutcome.NOTHING_TO_SYNC)

        self._client.ensure_configured()

        batches = chunk_records(records, self._batch_size)
        results: List[BatchResult] = []

        for index, batch in enumerate(batches, start=1):
            if index > 1:
                await self._sleep(self._batch_delay)
            result = await self._send(index, batch)
            results.append(result)
            if result.succeeded:
                logger.info("Batch %s/%s delivered (%s items)", index, len(batches), len(batch))
            else:
                logger.warning(
                    "Batch %s/%s failed (%s items): %s",
                    index,
                    len(batches),
                    len(batch),
                    result.error,
                )

        failed = sum(1 for result in results if not result.succeeded)
        confirmed = sum(result.item_count for result in results if result.succeeded)
        if failed == 0:
            outcome = SyncOutcome.SUCCESS
        elif confirmed == 0:
            outcome = SyncOutcome.FAILED
        else:
            outcome = SyncOutcome.PARTIAL

        return SyncReport(
            outcome=outcome,
            total_records=len(records),
            batches_sent=len(results),
            batches_failed=failed,
            records_confirmed=confirmed,
            batches=results,
        )

    async def _send(self, index: int, batch: List[StockRecord]) -> BatchResult:
        payload = [record.to_wire() for record in batch]
        try:
            try:
                response = await self._client.post_batch(payload)
            except httpx.HTTPStatusError as exc:
                raise PublishError(
                    describe_http_error(exc), http_status=exc.response.status_code
                ) from exc
            except httpx.HTTPError as exc:
                raise PublishError(describe_http_error(exc)) from exc

            accepted, detail = _acknowledged(response)
            if not accepted:
                raise PublishError(detail or "rejected", http_status=response.status_code)
        except PublishError as exc:
            return BatchResult(
                batch_index=index,
                item_count=len(batch),
                succeeded=False,
                http_status=exc.http_status,
                error=str(exc),
            )

        return BatchResult(
            batch_index=index,
            item_count=len(batch),
            succeeded=True,
            http_status=response.status_code,
        )


__all__ = ["WixPublisher", "chunk_records"]

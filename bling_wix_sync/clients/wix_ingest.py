"""Client for the Wix HTTP function that ingests stock batches."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import httpx

from bling_wix_sync.core.config import WixSettings
from bling_wix_sync.core.errors import ConfigError
from bling_wix_sync.utils.http import RetryPolicy, Sleeper, request_with_retry


class WixIngestionClient:
    """POST JSON arrays of stock lines to the configured Wix endpoint."""

    def __init__(
        self,
        wix_settings: WixSettings,
        *,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._wix = wix_settings
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @property
    def ingest_url(self) -> str:
        self.ensure_configured()
        return self._wix.ingest_url

    def ensure_configured(self) -> None:
        if not self._wix.ingest_url:
            raise ConfigError("WIX_INGEST_URL must be configured.")

    async def post_batch(self, items: List[Dict[str, Any]]) -> httpx.Response:
        """Send one batch; transport failures and 5xx are retried."""
        url = self.ingest_url
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            return await request_with_retry(
                client.post,
                url,
                json=items,
                headers={"Accept": "application/json"},
                retry_policy=self._retry_policy,
                sleep=self._sleep,
            )


__all__ = ["WixIngestionClient"]

"""Client for the Bling v3 product listing endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import httpx

from bling_wix_sync.core.config import BlingSettings
from bling_wix_sync.core.errors import AccessTokenRejectedError
from bling_wix_sync.utils.http import RetryPolicy, Sleeper, request_with_retry

logger = logging.getLogger(__name__)


class BlingProductsClient:
    """Fetch single pages of the product catalog."""

    _USER_AGENT = "bling-wix-sync"

    def __init__(
        self,
        bling_settings: BlingSettings,
        *,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._bling = bling_settings
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep

    @property
    def products_url(self) -> str:
        return f"{self._bling.api_base_url.rstrip('/')}/produtos"

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "User-Agent": self._USER_AGENT,
        }

    async def list_products(
        self, *, access_token: str, page: int, page_size: int
    ) -> List[Dict[str, Any]]:
        """
        Return the raw entries of one page, retrying transient failures.

        Raises ``AccessTokenRejectedError`` on 401 without retrying, and the
        last ``httpx.HTTPError`` once attempts are exhausted.
        """
        params = {"pagina": page, "limite": page_size}
        entries: List[Dict[str, Any]] = []

        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:

            async def get_page(url: str, **kwargs: Any) -> httpx.Response:
                # Decode inside the attempt so an HTML page on 200 is retried.
                response = await client.get(url, **kwargs)
                if response.is_success:
                    entries[:] = _page_entries(response)
                return response

            try:
                await request_with_retry(
                    get_page,
                    self.products_url,
                    params=params,
                    headers=self._headers(access_token),
                    retry_policy=self._retry_policy,
                    sleep=self._sleep,
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 401:
                    raise AccessTokenRejectedError() from exc
                raise

        return entries

    async def probe(self, *, access_token: str) -> bool:
        """Single-shot, one-item request used to detect degraded connectivity."""
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            try:
                response = await client.get(
                    self.products_url,
                    params={"pagina": 1, "limite": 1},
                    headers=self._headers(access_token),
                )
            except httpx.TransportError as exc:
                logger.warning("Bling connectivity probe failed: %s", type(exc).__name__)
                return False

        if response.status_code == 401:
            raise AccessTokenRejectedError()
        if response.status_code >= 500 or response.status_code == 429:
            logger.warning("Bling connectivity probe answered HTTP %s", response.status_code)
            return False
        return True


def _page_entries(response: httpx.Response) -> List[Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise httpx.DecodingError(
            "Bling returned a non-JSON product page", request=response.request
        ) from exc
    data = payload.get("data") if isinstance(payload, dict) else None
    if data is None:
        return []
    if not isinstance(data, list):
        raise httpx.DecodingError(
            "Bling product page 'data' is not a list", request=response.request
        )
    return [entry for entry in data if isinstance(entry, dict)]


__all__ = ["BlingProductsClient"]

"""
Helpers for retrieving and refreshing Bling OAuth tokens.
"""

from __future__ import annotations

import logging

from bling_wix_sync.clients.bling_auth import BlingOAuthClient
from bling_wix_sync.core.errors import AuthError, ConfigError
from bling_wix_sync.models import TokenPair
from bling_wix_sync.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class BlingTokenService:
    """Hand out the current access token and rotate the pair on demand."""

    def __init__(self, store: TokenStore, oauth_client: BlingOAuthClient) -> None:
        self._store = store
        self._oauth = oauth_client

    async def ensure_valid_token(self) -> str:
        """
        Return the held access token.

        Expiry is not checked; callers react to a 401 by calling ``refresh``.
        A pair bootstrapped from a bare refresh token is exchanged first.
        """
        pair = self._store.get()
        if pair is None:
            raise ConfigError(
                "No Bling refresh token available; complete the authorization flow first."
            )
        if not pair.has_access_token:
            return await self.refresh()
        return pair.access_token

    async def refresh(self) -> str:
        """
        Exchange the stored refresh token and store the returned pair.

        ``invalid_grant`` invalidates the stored tokens and propagates without
        a retry. Any other auth failure is retried once.
        """
        pair = self._store.get()
        if pair is None:
            raise ConfigError("No Bling refresh token available to refresh.")

        try:
            new_pair = await self._exchange(pair)
        except AuthError as exc:
            if exc.is_invalid_grant:
                raise
            logger.warning("Bling token refresh failed (%s); retrying once", exc.error_type)
            new_pair = await self._exchange(pair)

        self._store.replace(new_pair)
        return new_pair.access_token

    async def complete_authorization(
        self, code: str, redirect_uri: str | None = None
    ) -> TokenPair:
        """Exchange an operator-supplied authorization code and keep the pair."""
        pair = await self._oauth.exchange_authorization_code(code, redirect_uri)
        self._store.replace(pair)
        return pair

    async def _exchange(self, pair: TokenPair) -> TokenPair:
        try:
            return await self._oauth.refresh(pair.refresh_token)
        except AuthError as exc:
            if exc.is_invalid_grant:
                self._store.invalidate()
            raise


__all__ = ["BlingTokenService"]

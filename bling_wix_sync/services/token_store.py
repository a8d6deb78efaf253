"""
Process-wide holder of the current Bling token pair.
"""

from __future__ import annotations

import logging
from typing import Optional

from bling_wix_sync.clients.sqlite_store import SQLiteTokenRepository
from bling_wix_sync.models import TokenPair
from bling_wix_sync.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


class TokenStore:
    """Own the current ``TokenPair`` and its encrypted persisted copy.

    On first access the persisted pair is loaded; the configured bootstrap
    refresh token is used only when nothing has been persisted, since a
    rotated token makes the configured one invalid. Without a repository or
    cipher the store keeps the pair in memory only.
    """

    def __init__(
        self,
        *,
        repository: SQLiteTokenRepository | None = None,
        cipher: TokenCipherService | None = None,
        bootstrap_refresh_token: str | None = None,
    ) -> None:
        self._repository = repository
        self._cipher = cipher
        self._bootstrap_refresh_token = bootstrap_refresh_token
        self._pair: Optional[TokenPair] = None
        self._loaded = False
        if repository is None or cipher is None:
            logger.warning(
                "Token persistence disabled; a rotated refresh token will not survive restarts"
            )

    @property
    def persistent(self) -> bool:
        return self._repository is not None and self._cipher is not None

    def get(self) -> Optional[TokenPair]:
        if not self._loaded:
            self._pair = self._load()
            self._loaded = True
        return self._pair

    def replace(self, pair: TokenPair) -> None:
        """Swap in a new pair and overwrite the persisted copy."""
        self._pair = pair
        self._loaded = True
        if self.persistent:
            self._repository.save(self._cipher.seal(pair))

    def invalidate(self) -> None:
        """Forget the pair everywhere; a new authorization is required."""
        self._pair = None
        self._loaded = True
        if self._repository is not None:
            self._repository.delete()
        logger.warning("Bling tokens invalidated; re-run the authorization flow")

    def _load(self) -> Optional[TokenPair]:
        if self.persistent:
            record = self._repository.load()
            if record is not None:
                try:
                    pair = self._cipher.open(record)
                except ValueError:
                    logger.error(
                        "Persisted Bling tokens could not be decrypted; ignoring them"
                    )
                else:
                    logger.info("Loaded persisted Bling token pair")
                    return pair
        if self._bootstrap_refresh_token:
            logger.info("Using configured bootstrap refresh token")
            return TokenPair(refresh_token=self._bootstrap_refresh_token)
        return None


__all__ = ["TokenStore"]

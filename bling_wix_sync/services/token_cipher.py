"""Symmetric encryption utilities for protecting stored tokens."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from bling_wix_sync.models import StoredTokenRecord, TokenPair


class TokenCipherService:
    """Encrypt and decrypt token pairs using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext or rotated secret."
            ) from exc
        return plaintext.decode("utf-8")

    def seal(self, pair: TokenPair) -> StoredTokenRecord:
        """Encrypt both halves of a pair into a storable record."""
        return StoredTokenRecord(
            access_token_encrypted=self.encrypt(pair.access_token),
            refresh_token_encrypted=self.encrypt(pair.refresh_token),
            obtained_at=pair.obtained_at,
        )

    def open(self, record: StoredTokenRecord) -> TokenPair:
        """Decrypt a stored record back into a pair."""
        return TokenPair(
            access_token=self.decrypt(record.access_token_encrypted),
            refresh_token=self.decrypt(record.refresh_token_encrypted),
            obtained_at=record.obtained_at,
        )


__all__ = ["TokenCipherService"]

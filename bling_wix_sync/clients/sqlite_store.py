"""SQLite persistence for the encrypted Bling token record."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from bling_wix_sync.models import StoredTokenRecord


class SQLiteTokenRepository:
    """Single-row-per-key table holding encrypted OAuth tokens."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS oauth_tokens (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT NOT NULL,
                    obtained_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def save(self, record: StoredTokenRecord) -> None:
        """Insert or replace the record in one statement."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO oauth_tokens (
                    pk, sk, access_token_encrypted, refresh_token_encrypted,
                    obtained_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET
                    access_token_encrypted = excluded.access_token_encrypted,
                    refresh_token_encrypted = excluded.refresh_token_encrypted,
                    obtained_at = excluded.obtained_at,
                    updated_at = excluded.updated_at
                """,
                (
                    record.pk,
                    record.sk,
                    record.access_token_encrypted,
                    record.refresh_token_encrypted,
                    record.obtained_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )

    def load(
        self, *, partition_key: str = "erp#bling", sort_key: str = "oauth#tokens"
    ) -> Optional[StoredTokenRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM oauth_tokens WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return StoredTokenRecord(**dict(row))

    def delete(
        self, *, partition_key: str = "erp#bling", sort_key: str = "oauth#tokens"
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM oauth_tokens WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )


__all__ = ["SQLiteTokenRepository"]

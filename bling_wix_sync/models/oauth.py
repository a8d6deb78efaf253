"""
Domain models for OAuth token handling and persistence.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenPair(BaseModel):
    """Access/refresh token pair issued by the Bling token endpoint.

    Instances are immutable; every exchange produces a new pair that replaces
    the previous one as a whole.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(
        "", description="Bearer credential; empty until the first exchange."
    )
    refresh_token: str = Field(..., min_length=1)
    obtained_at: datetime = Field(default_factory=_utcnow)
    expires_in: int | None = Field(
        None, description="Lifetime reported by Bling, informational only."
    )

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)


class StoredTokenRecord(BaseModel):
    """Represents the encrypted token row stored in SQLite."""

    pk: str = Field("erp#bling", description="Partition key for the ERP account.")
    sk: str = Field("oauth#tokens", description="Sort key describing the record type.")
    access_token_encrypted: str
    refresh_token_encrypted: str
    obtained_at: datetime
    updated_at: datetime = Field(default_factory=_utcnow)


__all__ = ["StoredTokenRecord", "TokenPair"]

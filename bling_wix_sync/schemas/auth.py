"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationStart(BaseModel):
    """Consent URL handed to the operator starting the Bling connection."""

    authorization_url: str = Field(..., description="Bling consent screen URL.")
    state: str = Field(..., description="Signed state echoed back on the callback.")


__all__ = ["AuthorizationStart"]

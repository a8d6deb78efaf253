"""
Bling OAuth utilities.

These helpers drive the operator-initiated consent flow and the token
exchanges against the Bling token endpoint.
"""

from __future__ import annotations

import base64
import hmac
import json
import logging
import time
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException, status

from bling_wix_sync.core.config import BlingSettings
from bling_wix_sync.core.errors import INVALID_GRANT, AuthError, ConfigError
from bling_wix_sync.models import TokenPair

logger = logging.getLogger(__name__)


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str, *, ttl_seconds: int = 900) -> None:
        self._secret_key = secret_key.encode("utf-8")
        self._ttl_seconds = ttl_seconds

    def encode(self, payload: Dict[str, Any]) -> str:
        body = dict(payload)
        body.setdefault("issued_at", int(time.time()))
        serialized = json.dumps(body, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized.encode("utf-8")).decode("utf-8")

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed OAuth state.",
            ) from exc
        signature, serialized = decoded[:32], decoded[32:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid OAuth state signature.",
            )
        payload = json.loads(serialized)
        issued_at = payload.get("issued_at")
        if not isinstance(issued_at, (int, float)) or time.time() - issued_at > self._ttl_seconds:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="OAuth state token has expired.",
            )
        return payload


def _error_type(payload: Any) -> Optional[str]:
    """Extract the OAuth error code from the shapes Bling is known to return."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        return error.get("type") or error.get("code")
    if isinstance(error, str):
        return error
    return None


class BlingOAuthClient:
    """Build Bling authorization URLs and exchange codes and refresh tokens."""

    def __init__(
        self,
        bling_settings: BlingSettings,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._bling = bling_settings
        self._timeout = timeout
        self._transport = transport

    @property
    def redirect_uri(self) -> Optional[str]:
        return self._bling.redirect_uri

    def _basic_auth_header(self) -> str:
        client_id = self._bling.client_id
        client_secret = self._bling.client_secret
        if not client_id or not client_secret:
            raise ConfigError("BLING_CLIENT_ID and BLING_CLIENT_SECRET must be configured.")
        raw = f"{client_id}:{client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def build_authorization_url(self, state: str) -> str:
        """Construct the Bling OAuth consent URL."""
        if not self._bling.client_id:
            raise ConfigError("BLING_CLIENT_ID must be configured.")
        params = {
            "response_type": "code",
            "client_id": self._bling.client_id,
            "state": state,
        }
        return f"{self._bling.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(
        self, code: str, redirect_uri: str | None = None
    ) -> TokenPair:
        """Exchange an authorization code for a fresh token pair."""
        form = {"grant_type": "authorization_code", "code": code}
        redirect = redirect_uri or self._bling.redirect_uri
        if redirect:
            form["redirect_uri"] = redirect

        payload = await self._post_token_request(form)
        access_token = payload.get("access_token")
        refresh_token = payload.get("refresh_token")
        if not access_token:
            raise AuthError("Token response from Bling is missing access_token.")
        if not refresh_token:
            raise AuthError("Token response from Bling is missing refresh_token.")

        logger.info("Exchanged authorization code for a new Bling token pair")
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=_as_int(payload.get("expires_in")),
        )

    async def refresh(
        self, current_refresh_token: str, redirect_uri: str | None = None
    ) -> TokenPair:
        """
        Exchange a refresh token for a new pair.

        Bling rotates refresh tokens: when the response carries a new one the
        old token is dead and the returned pair holds the replacement. When the
        response omits it, the current refresh token is kept.
        """
        if not current_refresh_token:
            raise ConfigError("No Bling refresh token available.")
        form = {"grant_type": "refresh_token", "refresh_token": current_refresh_token}
        if redirect_uri:
            form["redirect_uri"] = redirect_uri

        payload = await self._post_token_request(form)
        access_token = payload.get("access_token")
        if not access_token:
            raise AuthError("Refresh response from Bling is missing access_token.")

        new_refresh_token = payload.get("refresh_token")
        if new_refresh_token and new_refresh_token != current_refresh_token:
            logger.info("Bling rotated the refresh token")

        return TokenPair(
            access_token=access_token,
            refresh_token=new_refresh_token or current_refresh_token,
            expires_in=_as_int(payload.get("expires_in")),
        )

    async def _post_token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        headers = {
            "Authorization": self._basic_auth_header(),
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self._bling.token_url, data=form, headers=headers)
        except httpx.TransportError as exc:
            raise AuthError(
                f"Could not reach the Bling token endpoint: {type(exc).__name__}",
                error_type="network",
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            error_type = _error_type(payload) or "token_endpoint_error"
            logger.warning(
                "Bling token endpoint answered %s (%s) for grant %s",
                response.status_code,
                error_type,
                form["grant_type"],
            )
            if error_type == INVALID_GRANT:
                message = "Bling rejected the grant; a new authorization is required."
            else:
                message = f"Bling token endpoint returned HTTP {response.status_code}."
            raise AuthError(message, error_type=error_type, status_code=response.status_code)

        if not isinstance(payload, dict):
            raise AuthError(
                "Bling token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            )
        return payload


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = ["BlingOAuthClient", "OAuthStateEncoder"]

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi import HTTPException

from bling_wix_sync.clients import BlingOAuthClient, OAuthStateEncoder
from bling_wix_sync.core.config import BlingSettings
from bling_wix_sync.core.errors import AuthError, ConfigError


def _settings(**overrides) -> BlingSettings:
    values = {
        "BLING_CLIENT_ID": "client",
        "BLING_CLIENT_SECRET": "secret",
        "BLING_REDIRECT_URI": "https://example.com/callback",
        "BLING_TOKEN_URL": "https://bling.test/oauth/token",
        "BLING_AUTHORIZE_URL": "https://bling.test/oauth/authorize",
    }
    values.update(overrides)
    return BlingSettings(**values)


class TokenEndpoint:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    def form(self, index: int = -1) -> dict[str, str]:
        parsed = parse_qs(self.requests[index].content.decode("utf-8"))
        return {key: values[0] for key, values in parsed.items()}


def _client(endpoint: TokenEndpoint, **overrides) -> BlingOAuthClient:
    return BlingOAuthClient(_settings(**overrides), transport=httpx.MockTransport(endpoint))


@pytest.mark.asyncio
async def test_exchange_authorization_code_uses_basic_auth_and_form() -> None:
    endpoint = TokenEndpoint(
        httpx.Response(
            200, json={"access_token": "at-1", "refresh_token": "rt-1", "expires_in": 21600}
        )
    )

    pair = await _client(endpoint).exchange_authorization_code("auth-code")

    assert pair.access_token == "at-1"
    assert pair.refresh_token == "rt-1"
    assert pair.expires_in == 21600
    request = endpoint.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://bling.test/oauth/token"
    expected = base64.b64encode(b"client:secret").decode("ascii")
    assert request.headers["authorization"] == f"Basic {expected}"
    assert endpoint.form() == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "redirect_uri": "https://example.com/callback",
    }


@pytest.mark.asyncio
async def test_exchange_without_access_token_is_an_auth_error() -> None:
    endpoint = TokenEndpoint(httpx.Response(200, json={"refresh_token": "rt"}))

    with pytest.raises(AuthError):
        await _client(endpoint).exchange_authorization_code("code")


@pytest.mark.asyncio
async def test_exchange_non_2xx_is_an_auth_error() -> None:
    endpoint = TokenEndpoint(httpx.Response(500, text="<html>oops</html>"))

    with pytest.raises(AuthError) as excinfo:
        await _client(endpoint).exchange_authorization_code("code")

    assert excinfo.value.status_code == 500
    assert not excinfo.value.is_invalid_grant


@pytest.mark.asyncio
async def test_refresh_returns_rotated_refresh_token() -> None:
    endpoint = TokenEndpoint(
        httpx.Response(200, json={"access_token": "at-2", "refresh_token": "rt-2"})
    )

    pair = await _client(endpoint).refresh("rt-1")

    assert pair.access_token == "at-2"
    assert pair.refresh_token == "rt-2"
    assert endpoint.form() == {"grant_type": "refresh_token", "refresh_token": "rt-1"}


@pytest.mark.asyncio
async def test_refresh_keeps_current_token_when_none_returned() -> None:
    endpoint = TokenEndpoint(httpx.Response(200, json={"access_token": "at-2"}))

    pair = await _client(endpoint).refresh("rt-1")

    assert pair.refresh_token == "rt-1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"error": {"type": "invalid_grant", "message": "invalid_grant"}},
        {"error": "invalid_grant", "error_description": "expired"},
    ],
)
async def test_refresh_surfaces_invalid_grant(body) -> None:
    endpoint = TokenEndpoint(httpx.Response(400, json=body))

    with pytest.raises(AuthError) as excinfo:
        await _client(endpoint).refresh("rt-revoked")

    assert excinfo.value.is_invalid_grant
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_network_failure_is_distinct_from_invalid_grant() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = BlingOAuthClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(AuthError) as excinfo:
        await client.refresh("rt-1")

    assert excinfo.value.error_type == "network"
    assert not excinfo.value.is_invalid_grant


@pytest.mark.asyncio
async def test_missing_credentials_raise_config_error_before_any_request() -> None:
    endpoint = TokenEndpoint(httpx.Response(200, json={}))

    with pytest.raises(ConfigError):
        await _client(endpoint, BLING_CLIENT_SECRET=None).refresh("rt-1")

    assert endpoint.requests == []


def test_build_authorization_url_carries_client_and_state() -> None:
    client = BlingOAuthClient(_settings())

    url = urlparse(client.build_authorization_url(state="abc"))

    assert f"{url.scheme}://{url.netloc}{url.path}" == "https://bling.test/oauth/authorize"
    assert parse_qs(url.query) == {
        "response_type": ["code"],
        "client_id": ["client"],
        "state": ["abc"],
    }


def test_state_encoder_round_trip_and_tamper_detection() -> None:
    encoder = OAuthStateEncoder("state-secret")
    token = encoder.encode({"nonce": "n-1"})

    assert encoder.decode(token)["nonce"] == "n-1"

    other = OAuthStateEncoder("different-secret")
    with pytest.raises(HTTPException):
        other.decode(token)


def test_state_encoder_rejects_expired_tokens() -> None:
    encoder = OAuthStateEncoder("state-secret", ttl_seconds=60)
    token = encoder.encode({"nonce": "n-1", "issued_at": 0})

    with pytest.raises(HTTPException) as excinfo:
        encoder.decode(token)

    assert excinfo.value.detail == "OAuth state token has expired."

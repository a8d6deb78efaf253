"""
FastAPI routes for the Bling to Wix synchronization service.
"""

from __future__ import annotations

import logging
import uuid
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from bling_wix_sync.core.config import AppSettings
from bling_wix_sync.core.errors import AuthError, ConfigError, SyncInProgressError
from bling_wix_sync.dependencies import (
    SettingsDependency,
    get_bling_oauth_client,
    get_bling_token_service,
    get_oauth_state_encoder,
    get_sync_orchestrator,
)
from bling_wix_sync.schemas import AuthorizationStart, SyncReport, SyncStatusResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "").lower()


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: AppSettings = SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.get("/auth/bling/authorize", status_code=HTTPStatus.OK)
async def start_bling_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_bling_oauth_client)],
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Bling consent screen.",
    ),
):
    """Issue a signed state token and the Bling consent URL."""
    state = state_encoder.encode({"nonce": uuid.uuid4().hex})
    try:
        authorization_url = oauth_client.build_authorization_url(state=state)
    except ConfigError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc

    if redirect or _wants_html(request):
        return RedirectResponse(
            url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    return AuthorizationStart(authorization_url=authorization_url, state=state)


@router.get("/auth/bling/callback", status_code=HTTPStatus.OK)
async def handle_bling_oauth_callback(
    state_encoder: Annotated[Any, Depends(get_oauth_state_encoder)],
    token_service: Annotated[Any, Depends(get_bling_token_service)],
    state: str = Query(..., description="OAuth state token."),
    code: str | None = Query(default=None, description="Authorization code from Bling."),
    error: str | None = Query(default=None, description="Error reported by Bling."),
) -> dict:
    """Complete the authorization-code exchange and keep the new token pair."""
    state_encoder.decode(state)

    if error or not code:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Bling authorization was not granted: {error or 'missing code'}.",
        )

    try:
        pair = await token_service.complete_authorization(code)
    except ConfigError as exc:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except AuthError as exc:
        logger.warning("Authorization code exchange failed: %s", exc.error_type)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange authorization code.",
        ) from exc

    return {"status": "connected", "obtained_at": pair.obtained_at.isoformat()}


@router.post("/sync", response_model=SyncReport)
@router.get("/sync", response_model=SyncReport)
async def trigger_sync(
    orchestrator: Annotated[Any, Depends(get_sync_orchestrator)],
) -> SyncReport:
    """Run one synchronization and return its report."""
    try:
        return await orchestrator.run()
    except SyncInProgressError as exc:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc)) from exc


@router.get("/sync/status", response_model=SyncStatusResponse)
async def sync_status(
    orchestrator: Annotated[Any, Depends(get_sync_orchestrator)],
) -> SyncStatusResponse:
    """Report the current run state, the last report and the cache summary."""
    cache = orchestrator.cache.describe()
    return SyncStatusResponse(
        state=orchestrator.state,
        running=orchestrator.running,
        last_report=orchestrator.last_report,
        cache_records=cache["records"],
        cache_age_seconds=cache["age_seconds"],
        cache_fresh=cache["fresh"],
    )


__all__ = ["router"]

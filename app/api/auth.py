from html import escape

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from app.core.config import Settings, get_settings
from app.core.logging import get_logger
from app.models.convert import AuthUrlResponse, CredentialStatusResponse
from app.services.delivery import DeliveryPipeline, get_delivery_pipeline
from app.services.google_drive import BACKEND_NAME, GoogleDriveCredentials, GoogleDriveStore

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _drive_credentials(settings: Settings, pipeline: DeliveryPipeline) -> GoogleDriveCredentials:
    backend = pipeline.get_backend(BACKEND_NAME)
    if isinstance(backend, GoogleDriveStore):
        return backend.credentials
    return GoogleDriveCredentials(settings.google_client_id, settings.google_client_secret)


@router.get("/url", response_model=AuthUrlResponse)
def get_auth_url(
    settings: Settings = Depends(get_settings),
    pipeline: DeliveryPipeline = Depends(get_delivery_pipeline),
) -> AuthUrlResponse:
    """Return the Google consent URL used to obtain a refresh token."""
    credentials = _drive_credentials(settings, pipeline)
    try:
        url = credentials.authorization_url(settings.google_redirect_uri)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return AuthUrlResponse(auth_url=url)


@router.get("/callback", response_class=HTMLResponse)
async def oauth_callback(
    code: str = Query(..., min_length=1),
    settings: Settings = Depends(get_settings),
    pipeline: DeliveryPipeline = Depends(get_delivery_pipeline),
) -> HTMLResponse:
    """Exchange an authorization code and show the refresh token to the operator."""
    credentials = _drive_credentials(settings, pipeline)
    try:
        async with httpx.AsyncClient(timeout=settings.backend_timeout_seconds) as client:
            tokens = await credentials.exchange_code(client, code, settings.google_redirect_uri)
    except ValueError as exc:
        logger.error("OAuth code exchange failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    refresh_token = tokens.get("refresh_token")
    if not refresh_token:
        body = (
            "<h1>Authorization complete</h1>"
            "<p>Google did not return a refresh token. Revoke the app's access and "
            "authorize again to receive one.</p>"
        )
    else:
        body = (
            "<h1>Authorization complete</h1>"
            "<p>Set this value as <code>GOOGLE_REFRESH_TOKEN</code> in the service "
            "environment:</p>"
            f"<pre>{escape(refresh_token)}</pre>"
        )
    logger.info("OAuth callback completed (refresh token returned: %s)", bool(refresh_token))
    return HTMLResponse(content=f"<html><body>{body}</body></html>")


@router.get("/status", response_model=CredentialStatusResponse)
async def credential_status(
    pipeline: DeliveryPipeline = Depends(get_delivery_pipeline),
) -> CredentialStatusResponse:
    """Report whether the configured Google Drive credential currently works."""
    backend = pipeline.get_backend(BACKEND_NAME)
    if not isinstance(backend, GoogleDriveStore):
        return CredentialStatusResponse(
            configured=False, valid=False, detail="Google Drive backend is not enabled"
        )

    result = await backend.check_credentials()
    return CredentialStatusResponse(
        configured=True, valid=result.valid, detail=result.detail, user=result.user
    )

"""Google Drive storage backend and OAuth credential handling."""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from app.core.errors import BackendAttemptError
from app.core.logging import get_logger
from app.services.storage import PDF_CONTENT_TYPE, StoredObject, make_object_name

logger = get_logger(__name__)

BACKEND_NAME = "google_drive"

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_ABOUT_URL = "https://www.googleapis.com/drive/v3/about"
DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?export=download&id={file_id}"
DRIVE_SCOPES = ("https://www.googleapis.com/auth/drive.file",)

# Refresh this many seconds before Google's stated expiry.
TOKEN_EXPIRY_MARGIN = 60
# Token refresh, upload and share run sequentially inside one attempt.
REQUESTS_PER_UPLOAD = 3


@dataclass(frozen=True)
class CredentialStatus:
    valid: bool
    detail: str
    user: str | None = None


def _describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        body = exc.response.text[:200] if exc.response.text else "no body"
        return f"HTTP {exc.response.status_code}: {body}"
    if isinstance(exc, httpx.TimeoutException):
        return f"timed out ({type(exc).__name__})"
    return f"{type(exc).__name__}: {exc}"


class GoogleDriveCredentials:
    """OAuth client credentials plus the derived short-lived access token.

    The access token is only a cache of the last successful exchange. It is
    refreshed once its `expires_in` lifetime has passed, and dropped whenever
    Drive rejects it, so the next call refreshes again. A token supplied in
    configuration has no known expiry and is used until Drive rejects it.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        *,
        refresh_token: str | None = None,
        access_token: str | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._access_token = access_token
        self._expires_at: float | None = None

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def has_client(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def invalidate(self) -> None:
        self._access_token = None
        self._expires_at = None

    def _store_token(self, payload: dict) -> str:
        self._access_token = payload["access_token"]
        expires_in = payload.get("expires_in")
        if isinstance(expires_in, (int, float)) and expires_in > 0:
            self._expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        else:
            self._expires_at = None
        return self._access_token

    async def refresh(self, client: httpx.AsyncClient) -> str:
        """Exchange the refresh token for a new access token."""
        if not self.refresh_token:
            raise BackendAttemptError(BACKEND_NAME, "credentials", "no refresh token configured")
        if not self.has_client:
            raise BackendAttemptError(
                BACKEND_NAME, "credentials", "client id and secret are required to refresh"
            )

        try:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise BackendAttemptError(BACKEND_NAME, "refresh", _describe_http_error(exc)) from exc
        except ValueError as exc:
            raise BackendAttemptError(BACKEND_NAME, "refresh", "invalid token response") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise BackendAttemptError(BACKEND_NAME, "refresh", "token response had no access_token")

        token = self._store_token(payload)
        logger.info("Refreshed Google Drive access token")
        return token

    async def ensure_access_token(self, client: httpx.AsyncClient) -> str:
        if self._access_token and not self.expired:
            return self._access_token
        if not self.refresh_token:
            raise BackendAttemptError(
                BACKEND_NAME, "credentials", "no access token or refresh token configured"
            )
        return await self.refresh(client)

    def authorization_url(self, redirect_uri: str) -> str:
        """Consent-screen URL that yields a code for a long-lived refresh token."""
        if not self.client_id:
            raise ValueError("GOOGLE_CLIENT_ID is not configured.")
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": redirect_uri,
                "response_type": "code",
                "scope": " ".join(DRIVE_SCOPES),
                "access_type": "offline",
                "prompt": "consent",
            }
        )
        return f"{GOOGLE_AUTH_URL}?{query}"

    async def exchange_code(self, client: httpx.AsyncClient, code: str, redirect_uri: str) -> dict:
        """Exchange an authorization code for tokens.

        Raises:
            ValueError: If the client is not configured or Google rejects the code.
        """
        if not self.has_client:
            raise ValueError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be configured.")
        try:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise ValueError(f"Authorization code exchange failed: {_describe_http_error(exc)}") from exc

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise ValueError("Authorization code exchange returned no access token.")
        self._store_token(payload)
        if payload.get("refresh_token"):
            self.refresh_token = payload["refresh_token"]
        return payload


class GoogleDriveStore:
    """Uploads PDFs to Google Drive and shares them by link."""

    name = BACKEND_NAME

    def __init__(
        self,
        credentials: GoogleDriveCredentials,
        *,
        folder_id: str | None = None,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self._folder_id = folder_id
        self._timeout = timeout
        self._transport = transport

    @property
    def request_timeout(self) -> float:
        return self._timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def upload(self, data: bytes, title: str) -> StoredObject:
        async with self._client() as client:
            token = await self.credentials.ensure_access_token(client)
            file_name = make_object_name(title)
            uploaded = await self._upload_file(client, token, file_name, data)

            file_id = uploaded.get("id")
            if not file_id:
                raise BackendAttemptError(self.name, "upload", "response had no file id")

            warning = None
            try:
                await self._share_publicly(client, token, file_id)
            except httpx.HTTPError as exc:
                detail = _describe_http_error(exc)
                logger.warning("Could not make Drive file %s public: %s", file_id, detail)
                warning = f"Could not set public permissions on the uploaded file ({detail})."

        url = uploaded.get("webContentLink") or DRIVE_DOWNLOAD_URL.format(file_id=file_id)
        logger.info("Uploaded %s to Google Drive as %s", file_name, file_id)
        return StoredObject(url=url, warning=warning)

    async def _upload_file(
        self, client: httpx.AsyncClient, token: str, file_name: str, data: bytes
    ) -> dict:
        metadata: dict[str, object] = {"name": file_name, "mimeType": PDF_CONTENT_TYPE}
        if self._folder_id:
            metadata["parents"] = [self._folder_id]

        boundary = f"md2pdf-{uuid.uuid4().hex}"
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {PDF_CONTENT_TYPE}\r\n\r\n"
        ).encode("utf-8") + data + f"\r\n--{boundary}--\r\n".encode("utf-8")

        try:
            response = await client.post(
                DRIVE_UPLOAD_URL,
                params={"uploadType": "multipart", "fields": "id,name,webContentLink,webViewLink"},
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": f"multipart/related; boundary={boundary}",
                },
                content=body,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 401:
                self.credentials.invalidate()
            raise BackendAttemptError(self.name, "upload", _describe_http_error(exc)) from exc
        except httpx.HTTPError as exc:
            raise BackendAttemptError(self.name, "upload", _describe_http_error(exc)) from exc
        except ValueError as exc:
            raise BackendAttemptError(self.name, "upload", "invalid upload response") from exc

        if not isinstance(payload, dict):
            raise BackendAttemptError(self.name, "upload", "invalid upload response")
        return payload

    async def _share_publicly(self, client: httpx.AsyncClient, token: str, file_id: str) -> None:
        response = await client.post(
            f"{DRIVE_FILES_URL}/{file_id}/permissions",
            headers={"Authorization": f"Bearer {token}"},
            json={"role": "reader", "type": "anyone"},
        )
        response.raise_for_status()

    async def check_credentials(self) -> CredentialStatus:
        """Confirm the configured credential with a read-only Drive call."""
        async with self._client() as client:
            try:
                token = await self.credentials.ensure_access_token(client)
            except BackendAttemptError as exc:
                return CredentialStatus(valid=False, detail=str(exc))

            try:
                response = await client.get(
                    DRIVE_ABOUT_URL,
                    params={"fields": "user"},
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPError as exc:
                if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 401:
                    self.credentials.invalidate()
                return CredentialStatus(valid=False, detail=_describe_http_error(exc))
            except ValueError:
                return CredentialStatus(valid=False, detail="invalid response from Drive")

        user = payload.get("user", {}) if isinstance(payload, dict) else {}
        email = user.get("emailAddress") if isinstance(user, dict) else None
        return CredentialStatus(valid=True, detail="Google Drive credentials are valid", user=email)

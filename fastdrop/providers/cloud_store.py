"""
Google Drive provider (Drive v3 REST API over httpx).

Flow:
1. Build an authorization context from the client credentials
2. Create the file with a multipart upload
3. Grant "anyone with the link" read access in a separate call
4. Return the canonical view link for the new file id

Steps 2 and 3 are not transactional: if the permission call fails the
file stays in Drive without public access and the upload is reported as a
network error.
"""
from __future__ import annotations

import json
import logging
import mimetypes
import uuid
from typing import Any, Dict, Generator, Optional

import httpx

from ..errors import ErrorKind, UploadError
from ..models import Credentials

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
FILES_URL = "https://www.googleapis.com/drive/v3/files"
VIEW_URL = "https://drive.google.com/file/d/{file_id}/view"


def _error_detail(response: httpx.Response) -> str:
    """Extract the remote error message, falling back to the raw body."""
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return payload.get("error_description") or error
    return response.text


class GoogleOAuth(httpx.Auth):
    """
    Authorization context built from client credentials.

    With a refresh token the first request is preceded by a token exchange
    and the access token is reused afterwards. Without one, requests go out
    unauthenticated and the API's own rejection is reported.
    """

    requires_response_body = True

    def __init__(self, credentials: Credentials):
        self._credentials = credentials
        self._access_token: Optional[str] = None

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self._access_token is None and self._credentials.refresh_token:
            token_response = yield httpx.Request(
                "POST",
                TOKEN_URL,
                data={
                    "client_id": self._credentials.client_id,
                    "client_secret": self._credentials.client_secret,
                    "refresh_token": self._credentials.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            if not token_response.is_success:
                raise UploadError(
                    ErrorKind.NETWORK,
                    f"Token refresh failed: {token_response.status_code} - {_error_detail(token_response)}",
                    status_code=token_response.status_code,
                )
            try:
                self._access_token = token_response.json()["access_token"]
            except (ValueError, KeyError, TypeError):
                raise UploadError(ErrorKind.NETWORK, "Token refresh response has no access_token") from None

        if self._access_token:
            request.headers["Authorization"] = f"Bearer {self._access_token}"
        yield request


class CloudStoreProvider:
    """
    Google Drive upload.

    Implements IProvider protocol.
    """

    name = "Google Drive"

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: Optional[Credentials],
        folder_id: Optional[str] = None,
    ):
        self._client = client
        self._credentials = credentials
        self._folder_id = folder_id

    async def upload(self, data: bytes, filename: str) -> str:
        if self._credentials is None or not self._credentials.complete:
            raise UploadError(
                ErrorKind.CONFIGURATION,
                "Google Drive credentials not configured. Please configure them in the settings.",
            )

        auth = GoogleOAuth(self._credentials)
        file_id = await self._create_file(auth, data, filename)
        logger.debug("Created Drive file %s for %s", file_id, filename)
        await self._grant_public_read(auth, file_id)
        return VIEW_URL.format(file_id=file_id)

    async def _create_file(self, auth: GoogleOAuth, data: bytes, filename: str) -> str:
        metadata: Dict[str, Any] = {"name": filename}
        if self._folder_id:
            metadata["parents"] = [self._folder_id]

        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        boundary = uuid.uuid4().hex
        body = b"".join([
            f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode(),
            json.dumps(metadata).encode("utf-8"),
            f"\r\n--{boundary}\r\nContent-Type: {content_type}\r\n\r\n".encode(),
            data,
            f"\r\n--{boundary}--\r\n".encode(),
        ])

        response = await self._send(
            "create",
            auth,
            "POST",
            UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id"},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        file_id = payload.get("id") if isinstance(payload, dict) else None
        if not file_id or not isinstance(file_id, str):
            raise UploadError(
                ErrorKind.NETWORK,
                "Google Drive upload failed: response did not include a file id",
                status_code=response.status_code,
                body=response.text,
            )
        return file_id

    async def _grant_public_read(self, auth: GoogleOAuth, file_id: str) -> None:
        await self._send(
            "permission",
            auth,
            "POST",
            f"{FILES_URL}/{file_id}/permissions",
            json={"role": "reader", "type": "anyone"},
        )

    async def _send(self, step: str, auth: GoogleOAuth, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, auth=auth, **kwargs)
        except httpx.HTTPError as exc:
            raise UploadError(ErrorKind.NETWORK, f"Google Drive {step} request failed: {exc}") from exc

        if not response.is_success:
            detail = _error_detail(response)
            logger.warning("Google Drive %s failed: %s %s", step, response.status_code, detail)
            raise UploadError(
                ErrorKind.NETWORK,
                f"Google Drive {step} failed: {response.status_code} - {detail}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

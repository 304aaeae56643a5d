"""Anonymous HTTP file host (0x0.st style)."""
from __future__ import annotations

import logging

import httpx

from ..errors import ErrorKind, UploadError

logger = logging.getLogger(__name__)


class AnonymousHostProvider:
    """
    Single multipart POST of the raw bytes; the response body is the URL.

    Implements IProvider protocol.
    """

    name = "0x0.st"

    def __init__(self, client: httpx.AsyncClient, endpoint: str, user_agent: str):
        self._client = client
        self._endpoint = endpoint
        self._user_agent = user_agent

    async def upload(self, data: bytes, filename: str) -> str:
        logger.debug("POST %s (%s, %d bytes)", self._endpoint, filename, len(data))
        try:
            response = await self._client.post(
                self._endpoint,
                files={"file": (filename, data)},
                headers={"User-Agent": self._user_agent},
            )
        except httpx.HTTPError as exc:
            raise UploadError(ErrorKind.NETWORK, f"Upload to {self.name} failed: {exc}") from exc

        if not response.is_success:
            body = response.text
            raise UploadError(
                ErrorKind.NETWORK,
                f"Upload to {self.name} failed: {response.status_code} {response.reason_phrase} - {body}",
                status_code=response.status_code,
                body=body,
            )

        url = response.text.strip()
        if not url:
            raise UploadError(
                ErrorKind.NETWORK,
                f"Upload to {self.name} returned an empty response",
                status_code=response.status_code,
            )
        return url

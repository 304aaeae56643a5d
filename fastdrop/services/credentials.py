"""Credential resolution for the cloud store provider."""
import logging
import os
from typing import Optional

from ..models import Credentials
from .settings import CREDENTIALS_KEY, SettingsStore

logger = logging.getLogger(__name__)

CLIENT_ID_ENV = "GOOGLE_CLIENT_ID"
CLIENT_SECRET_ENV = "GOOGLE_CLIENT_SECRET"
REFRESH_TOKEN_ENV = "GOOGLE_REFRESH_TOKEN"


class CredentialStore:
    """
    Sole reader/writer of cloud store credentials.

    Resolution order:
    1. Credentials persisted in the settings file
    2. GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET from the environment
    """

    def __init__(self, settings: SettingsStore):
        self._settings = settings

    async def save(self, client_id: str, client_secret: str, refresh_token: Optional[str] = None) -> None:
        record = {"clientId": client_id, "clientSecret": client_secret}
        if refresh_token:
            record["refreshToken"] = refresh_token
        await self._settings.update(**{CREDENTIALS_KEY: record})
        logger.info("Credentials saved to %s", self._settings.path)

    async def get_persisted(self) -> Optional[Credentials]:
        """Return stored credentials, or None if absent or incomplete."""
        data = await self._settings.load()
        record = data.get(CREDENTIALS_KEY)
        if not isinstance(record, dict):
            return None

        credentials = Credentials(
            client_id=str(record.get("clientId") or ""),
            client_secret=str(record.get("clientSecret") or ""),
            refresh_token=record.get("refreshToken") or None,
        )
        return credentials if credentials.complete else None

    def from_environment(self) -> Optional[Credentials]:
        credentials = Credentials(
            client_id=os.getenv(CLIENT_ID_ENV, ""),
            client_secret=os.getenv(CLIENT_SECRET_ENV, ""),
            refresh_token=os.getenv(REFRESH_TOKEN_ENV) or None,
        )
        return credentials if credentials.complete else None

    async def resolve(self) -> Optional[Credentials]:
        """Resolve credentials for an upload attempt; None if unconfigured."""
        credentials = await self.get_persisted()
        if credentials is not None:
            logger.debug("Using persisted credentials")
            return credentials

        credentials = self.from_environment()
        if credentials is not None:
            logger.debug("Using credentials from environment")
        return credentials

"""Core engine - the boundary the presentation layer talks to."""
import asyncio
import logging
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

import httpx

from ..models import Credentials, EngineConfig, ProviderKind, UploadEntry, UploadOutcome
from ..protocols import IClipboard, INotifier, IProvider
from ..providers import build_provider
from ..services.credentials import CredentialStore
from ..services.desktop import SystemClipboard, SystemNotifier
from ..services.notifier import NotificationDispatcher
from ..services.settings import SettingsStore
from ..utils.events import EventEmitter
from .progress import ProgressEstimator
from .registry import UploadRegistry
from .single_upload import SingleUploadHandler

logger = logging.getLogger(__name__)


class UploadEngine:
    """
    Orchestrates file uploads using injected services.

    Usage:
        async with UploadEngine() as engine:
            entry = engine.submit_path("~/report.pdf")
            outcome = await engine.begin_upload(entry.entry_id)
            print(outcome.url or outcome.message)

    Each begin_upload call is independent; run several with asyncio.gather
    to upload concurrently.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        settings: Optional[SettingsStore] = None,
        clipboard: Optional[IClipboard] = None,
        notifier: Optional[INotifier] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize engine with dependencies.

        Args:
            config: Engine configuration
            settings: Settings store (default: ~/.fastdrop/config.json)
            clipboard: Clipboard implementation (default: platform tools)
            notifier: Notification implementation (default: platform tools)
            http_client: Pre-built HTTP client; closed by its owner, not the engine
        """
        self._config = config or EngineConfig()
        self._settings = settings or SettingsStore()
        self._credentials = CredentialStore(self._settings)
        self._events = EventEmitter()
        self._registry = UploadRegistry(self._events)
        self._dispatcher = NotificationDispatcher(
            self._settings,
            clipboard or SystemClipboard(),
            notifier or SystemNotifier(),
            title=self._config.notification_title,
        )
        self._estimator = ProgressEstimator(
            self._registry,
            interval=self._config.progress_interval,
            step=self._config.progress_step,
            cap=self._config.progress_cap,
        )
        self._handler = SingleUploadHandler(self._registry, self._estimator, self._dispatcher)

        self._external_client = http_client
        self._client: Optional[httpx.AsyncClient] = http_client
        self._uploads: Set[asyncio.Task] = set()

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout, follow_redirects=True)
        return self

    async def __aexit__(self, *args):
        if self._uploads:
            await asyncio.gather(*self._uploads, return_exceptions=True)
        if self._client is not None and self._client is not self._external_client:
            await self._client.aclose()
        self._client = self._external_client

    @property
    def registry(self) -> UploadRegistry:
        return self._registry

    def on(self, event_name: str, callback: Callable) -> None:
        """Subscribe to entry_added / entry_updated / entry_removed."""
        self._events.on(event_name, callback)

    def off(self, event_name: str, callback: Callable) -> None:
        self._events.off(event_name, callback)

    # Entries

    def submit_path(self, path: Union[str, Path]) -> UploadEntry:
        return self._registry.add(path)

    def remove_entry(self, entry_id: str) -> bool:
        """Forget an entry. An upload in flight keeps running; its result is discarded."""
        return self._registry.remove(entry_id)

    def list_entries(self) -> List[UploadEntry]:
        return self._registry.list()

    async def begin_upload(self, entry_id: str, provider: Optional[ProviderKind] = None) -> UploadOutcome:
        """
        Upload a registered Idle entry.

        Args:
            entry_id: Entry returned by submit_path
            provider: Backend to use (default: the persisted selection)

        Returns:
            UploadOutcome with url on success, message/kind on error
        """
        if self._client is None:
            raise RuntimeError("UploadEngine not initialized. Use 'async with' context.")

        entry = self._registry.get(entry_id)
        kind = provider or await self._settings.get_provider()

        async def provider_factory() -> IProvider:
            credentials = None
            if kind is ProviderKind.CLOUD_STORE:
                credentials = await self._credentials.resolve()
            return build_provider(kind, self._client, self._config, credentials)

        # The upload belongs to the engine: cancelling the caller only stops the wait.
        task = asyncio.create_task(self._handler.upload(entry, provider_factory), name=f"upload-{entry.entry_id}")
        self._uploads.add(task)
        task.add_done_callback(self._uploads.discard)
        return await asyncio.shield(task)

    # Settings

    async def save_credentials(self, client_id: str, client_secret: str, refresh_token: Optional[str] = None) -> None:
        await self._credentials.save(client_id, client_secret, refresh_token)

    async def get_credentials(self) -> Optional[Credentials]:
        return await self._credentials.get_persisted()

    async def set_auto_copy(self, enabled: bool) -> bool:
        try:
            await self._settings.set_auto_copy(enabled)
            return True
        except OSError as e:
            logger.error("Failed to set auto-copy: %s", e)
            return False

    async def get_auto_copy(self) -> bool:
        return await self._settings.get_auto_copy()

    async def set_auto_start(self, enabled: bool) -> bool:
        try:
            await self._settings.set_auto_start(enabled)
            return True
        except OSError as e:
            logger.error("Failed to set auto-start: %s", e)
            return False

    async def get_auto_start(self) -> bool:
        return await self._settings.get_auto_start()

    async def set_provider(self, kind: ProviderKind) -> None:
        await self._settings.set_provider(kind)

    async def get_provider(self) -> ProviderKind:
        return await self._settings.get_provider()

    async def notify(self, title: str, body: str, url: Optional[str] = None) -> bool:
        return await self._dispatcher.notify(title, body, url)

"""Side effects fired when an upload succeeds."""
import logging
from typing import Optional

from ..models import UploadEntry
from ..protocols import IClipboard, INotifier
from .settings import SettingsStore

logger = logging.getLogger(__name__)

COPIED_BODY = "{name} uploaded successfully! Link copied to clipboard."
OPEN_APP_BODY = "{name} uploaded successfully! Click to view in app."


class NotificationDispatcher:
    """
    Clipboard copy + OS notification for successful uploads.

    Failures are logged and swallowed; they never reach the entry.
    """

    def __init__(
        self,
        settings: SettingsStore,
        clipboard: IClipboard,
        notifier: INotifier,
        title: str = "FastDrop - Upload Complete",
    ):
        self._settings = settings
        self._clipboard = clipboard
        self._notifier = notifier
        self._title = title

    async def dispatch_success(self, entry: UploadEntry) -> None:
        url = entry.result_url
        if not url:
            return

        auto_copy = await self._settings.get_auto_copy()
        if auto_copy:
            await self.copy(url)

        template = COPIED_BODY if auto_copy else OPEN_APP_BODY
        await self.notify(self._title, template.format(name=entry.display_name), url)

    async def copy(self, text: str) -> bool:
        try:
            await self._clipboard.copy(text)
            return True
        except Exception as e:
            logger.warning("Failed to copy link to clipboard: %s", e)
            return False

    async def notify(self, title: str, body: str, url: Optional[str] = None) -> bool:
        try:
            return bool(await self._notifier.notify(title, body, url))
        except Exception as e:
            logger.error("Failed to show notification: %s", e)
            return False

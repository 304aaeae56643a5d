"""Services for fastdrop."""
from .credentials import CredentialStore
from .desktop import SystemClipboard, SystemNotifier
from .notifier import NotificationDispatcher
from .settings import SettingsStore

__all__ = [
    "CredentialStore",
    "NotificationDispatcher",
    "SettingsStore",
    "SystemClipboard",
    "SystemNotifier",
]

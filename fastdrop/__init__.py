"""
fastdrop - Queue local files and upload each to a file host or cloud drive.

Usage:
    from fastdrop import UploadEngine, ProviderKind

    async with UploadEngine() as engine:
        entry = engine.submit_path("/tmp/photo.png")
        outcome = await engine.begin_upload(entry.entry_id, ProviderKind.ANONYMOUS_HOST)
        if outcome.success:
            print(outcome.url)

    # Google Drive needs OAuth client credentials, saved once:
    await engine.save_credentials(client_id, client_secret, refresh_token)
    outcome = await engine.begin_upload(entry.entry_id, ProviderKind.CLOUD_STORE)
"""
from .errors import EntryNotFoundError, ErrorKind, InvalidTransitionError, UploadError
from .models import (
    Credentials,
    EngineConfig,
    ProviderKind,
    UploadEntry,
    UploadOutcome,
    UploadState,
)
from .orchestrator import UploadEngine, UploadRegistry
from .services import (
    CredentialStore,
    NotificationDispatcher,
    SettingsStore,
)

__version__ = "1.0.0"
__all__ = [
    # Main
    "UploadEngine",
    "UploadRegistry",
    # Models
    "Credentials",
    "EngineConfig",
    "ProviderKind",
    "UploadEntry",
    "UploadOutcome",
    "UploadState",
    # Errors
    "EntryNotFoundError",
    "ErrorKind",
    "InvalidTransitionError",
    "UploadError",
    # Services
    "CredentialStore",
    "NotificationDispatcher",
    "SettingsStore",
]

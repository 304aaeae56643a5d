"""
SettingsStore - Local JSON settings file.

Holds credentials and the process-wide flags (autoCopy, autoStart,
selectedProvider). The file is re-read at every decision point, so edits
made by another process are picked up. A missing or corrupted file means
defaults, never an error.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..models import ProviderKind

logger = logging.getLogger(__name__)

# Default settings location
DEFAULT_SETTINGS_DIR = Path.home() / ".fastdrop"
DEFAULT_SETTINGS_FILE = "config.json"

CREDENTIALS_KEY = "googleCredentials"
AUTO_COPY_KEY = "autoCopy"
AUTO_START_KEY = "autoStart"
PROVIDER_KEY = "selectedProvider"


def default_settings_dir() -> Path:
    env_dir = os.getenv("FASTDROP_HOME")
    return Path(env_dir).expanduser() if env_dir else DEFAULT_SETTINGS_DIR


class SettingsStore:
    """
    JSON settings file.

    Writes are read-modify-write, so keys this version does not know about
    survive a save.
    """

    def __init__(self, settings_dir: Optional[Path] = None, settings_file: str = DEFAULT_SETTINGS_FILE):
        """
        Initialize settings store.

        Args:
            settings_dir: Directory holding the settings file (default: ~/.fastdrop)
            settings_file: Name of the settings file (default: config.json)
        """
        self._settings_dir = Path(settings_dir) if settings_dir else default_settings_dir()
        self._settings_file = self._settings_dir / settings_file

    @property
    def path(self) -> Path:
        return self._settings_file

    async def load(self) -> Dict[str, Any]:
        """Load settings from disk, falling back to an empty record."""
        try:
            if not self._settings_file.exists():
                logger.debug("Settings: no file at %s, using defaults", self._settings_file)
                return {}
            with open(self._settings_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Settings: failed to parse %s: %s - using defaults", self._settings_file, e)
            return {}
        except OSError as e:
            logger.warning("Settings: failed to read %s: %s - using defaults", self._settings_file, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Settings: %s does not hold an object - using defaults", self._settings_file)
            return {}
        return data

    async def update(self, **changes: Any) -> Dict[str, Any]:
        """Merge changes into the stored record and write it back."""
        data = await self.load()
        data.update(changes)

        self._settings_dir.mkdir(parents=True, exist_ok=True)
        with open(self._settings_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.debug("Settings: saved %s to %s", ", ".join(changes), self._settings_file)
        return data

    async def get_bool(self, key: str, default: bool = False) -> bool:
        data = await self.load()
        value = data.get(key, default)
        return value if isinstance(value, bool) else default

    async def get_auto_copy(self) -> bool:
        return await self.get_bool(AUTO_COPY_KEY)

    async def set_auto_copy(self, enabled: bool) -> None:
        await self.update(**{AUTO_COPY_KEY: bool(enabled)})

    async def get_auto_start(self) -> bool:
        return await self.get_bool(AUTO_START_KEY)

    async def set_auto_start(self, enabled: bool) -> None:
        await self.update(**{AUTO_START_KEY: bool(enabled)})

    async def get_provider(self) -> ProviderKind:
        data = await self.load()
        try:
            return ProviderKind.parse(str(data.get(PROVIDER_KEY, ProviderKind.ANONYMOUS_HOST.value)))
        except ValueError:
            logger.warning("Settings: unknown provider %r - using default", data.get(PROVIDER_KEY))
            return ProviderKind.ANONYMOUS_HOST

    async def set_provider(self, kind: ProviderKind) -> None:
        await self.update(**{PROVIDER_KEY: kind.value})

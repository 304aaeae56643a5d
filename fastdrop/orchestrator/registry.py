"""Upload registry - owns every entry of the session."""
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ..errors import EntryNotFoundError
from ..models import UploadEntry
from ..utils.events import ENTRY_ADDED, ENTRY_REMOVED, ENTRY_UPDATED, EventEmitter

logger = logging.getLogger(__name__)


def normalize_path(path: Union[str, Path]) -> Path:
    return Path(os.path.abspath(Path(path).expanduser()))


class UploadRegistry:
    """
    Insertion-ordered set of upload entries, one per absolute path.

    All operations are atomic under a lock. Writers go through apply(),
    which refuses to touch an entry that has been removed, so a late
    completion after remove() is a no-op.
    """

    def __init__(self, events: Optional[EventEmitter] = None):
        self._entries: Dict[str, UploadEntry] = {}
        self._by_path: Dict[Path, str] = {}
        self._lock = threading.Lock()
        self._events = events or EventEmitter()

    @property
    def events(self) -> EventEmitter:
        return self._events

    def add(self, path: Union[str, Path]) -> UploadEntry:
        """Return the entry for path, creating an Idle one if needed."""
        key = normalize_path(path)
        with self._lock:
            existing_id = self._by_path.get(key)
            if existing_id is not None:
                return self._entries[existing_id]
            entry = UploadEntry(path=key)
            self._entries[entry.entry_id] = entry
            self._by_path[key] = entry.entry_id
            snapshot = entry.snapshot()

        logger.debug("Added %s as %s", key, entry.entry_id)
        self._events.emit_sync(ENTRY_ADDED, snapshot)
        return entry

    def remove(self, entry_id: str) -> bool:
        """Drop the entry regardless of state. Returns False if it was not present."""
        with self._lock:
            entry = self._entries.pop(entry_id, None)
            if entry is None:
                return False
            del self._by_path[entry.path]
            snapshot = entry.snapshot()

        logger.debug("Removed %s (%s)", entry.path, entry.state.value)
        self._events.emit_sync(ENTRY_REMOVED, snapshot)
        return True

    def get(self, entry_id: str) -> UploadEntry:
        with self._lock:
            try:
                return self._entries[entry_id]
            except KeyError:
                raise EntryNotFoundError(entry_id) from None

    def find(self, path: Union[str, Path]) -> Optional[UploadEntry]:
        with self._lock:
            entry_id = self._by_path.get(normalize_path(path))
            return self._entries[entry_id] if entry_id else None

    def list(self) -> List[UploadEntry]:
        """Snapshots of all entries, in insertion order."""
        with self._lock:
            return [entry.snapshot() for entry in self._entries.values()]

    def is_live(self, entry: UploadEntry) -> bool:
        with self._lock:
            return self._entries.get(entry.entry_id) is entry

    def apply(self, entry: UploadEntry, action: Callable[[UploadEntry], Optional[bool]]) -> bool:
        """
        Run action on entry if it is still registered.

        The action may return False to signal "nothing changed" (no event).
        Returns True if the entry was live and the action ran.
        """
        with self._lock:
            if self._entries.get(entry.entry_id) is not entry:
                return False
            changed = action(entry)
            snapshot = entry.snapshot()

        if changed is not False:
            self._events.emit_sync(ENTRY_UPDATED, snapshot)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        with self._lock:
            return entry_id in self._entries

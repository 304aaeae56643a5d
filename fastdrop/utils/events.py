from typing import Callable, Dict, List, Set
import asyncio
import logging
logger = logging.getLogger(__name__)

ENTRY_ADDED = "entry_added"
ENTRY_UPDATED = "entry_updated"
ENTRY_REMOVED = "entry_removed"


class EventEmitter:
    """Simple event emitter for upload events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._pending: Set[asyncio.Task] = set()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        if event_name not in self._listeners:
            self._listeners[event_name] = []
        if callback not in self._listeners[event_name]:
            self._listeners[event_name].append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if event_name in self._listeners:
            if callback in self._listeners[event_name]:
                self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners. Listener errors are logged, not raised."""
        if event_name not in self._listeners:
            return

        for callback in self._listeners[event_name][:]:  # Copy list to avoid modification during iteration
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(*args, **kwargs)
                else:
                    callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    def emit_sync(self, event_name: str, *args, **kwargs):
        """
        Emit from synchronous code.

        Plain callbacks run inline; coroutine callbacks are scheduled on the
        running loop, or skipped when there is none.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for callback in self._listeners.get(event_name, [])[:]:
            if asyncio.iscoroutinefunction(callback):
                if loop is not None:
                    task = loop.create_task(self._call_async(event_name, callback, *args, **kwargs))
                    self._pending.add(task)
                    task.add_done_callback(self._pending.discard)
                continue
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")

    async def _call_async(self, event_name: str, callback: Callable, *args, **kwargs):
        try:
            await callback(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in event listener for {event_name}: {e}")

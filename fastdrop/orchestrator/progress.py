"""Synthetic progress for uploads whose backend reports none."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ..models import UploadEntry, UploadState
from .registry import UploadRegistry

logger = logging.getLogger(__name__)


class ProgressEstimator:
    """
    Ticks an Uploading entry's progress by a fixed step up to a cap.

    Usage:
        async with estimator.track(entry):
            url = await provider.upload(data, name)
        # ticking has stopped here, whatever happened inside
    """

    def __init__(self, registry: UploadRegistry, interval: float = 0.2, step: int = 10, cap: int = 90):
        self._registry = registry
        self._interval = interval
        self._step = step
        self._cap = cap

    @asynccontextmanager
    async def track(self, entry: UploadEntry) -> AsyncIterator[None]:
        task = asyncio.create_task(self._tick(entry), name=f"progress-{entry.entry_id}")
        try:
            yield
        finally:
            task.cancel()
            await asyncio.wait([task])

    async def _tick(self, entry: UploadEntry) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if entry.state is not UploadState.UPLOADING:
                return
            if not self._registry.apply(entry, lambda e: e.advance(self._step, self._cap)):
                logger.debug("Entry %s removed, progress ticks stopped", entry.entry_id)
                return

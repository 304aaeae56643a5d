"""Single entry upload - drives Idle -> Uploading -> Success | Error."""
import asyncio
import logging
from typing import Awaitable, Callable

from ..errors import EntryNotFoundError, ErrorKind, UploadError
from ..models import UploadEntry, UploadOutcome
from ..protocols import IProvider
from ..services.notifier import NotificationDispatcher
from .progress import ProgressEstimator
from .registry import UploadRegistry

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], Awaitable[IProvider]]


class SingleUploadHandler:
    """Runs one entry through its state machine."""

    def __init__(
        self,
        registry: UploadRegistry,
        estimator: ProgressEstimator,
        dispatcher: NotificationDispatcher,
    ):
        self._registry = registry
        self._estimator = estimator
        self._dispatcher = dispatcher

    async def upload(self, entry: UploadEntry, provider_factory: ProviderFactory) -> UploadOutcome:
        """
        Upload entry with the provider built by provider_factory.

        Raises InvalidTransitionError if the entry is not Idle and
        EntryNotFoundError if it is no longer registered. Every other
        failure ends in the Error state and is returned, never raised.
        """
        if not self._registry.apply(entry, lambda e: e.begin()):
            raise EntryNotFoundError(entry.entry_id)

        logger.info("Uploading %s", entry.path)
        url = None
        error = None

        async with self._estimator.track(entry):
            try:
                provider = await provider_factory()
                data = await self._read(entry)
                url = await provider.upload(data, entry.display_name)
            except UploadError as e:
                error = e
            except Exception as e:
                logger.exception("Unexpected failure uploading %s", entry.path)
                error = UploadError(ErrorKind.UNKNOWN, f"Upload failed: {e}")

        if error is not None:
            return self._reject(entry, error)
        return await self._resolve(entry, url)

    async def _read(self, entry: UploadEntry) -> bytes:
        try:
            return await asyncio.to_thread(entry.path.read_bytes)
        except OSError as e:
            raise UploadError(ErrorKind.UNKNOWN, f"Could not read {entry.display_name}: {e}") from e

    def _reject(self, entry: UploadEntry, error: UploadError) -> UploadOutcome:
        outcome = UploadOutcome.fail(error.message, error.kind)
        if self._registry.apply(entry, lambda e: e.fail(outcome.message, error.kind)):
            logger.warning("Upload of %s failed: %s", entry.display_name, outcome.message)
        else:
            logger.debug("Entry %s removed during upload; error discarded", entry.entry_id)
        return outcome

    async def _resolve(self, entry: UploadEntry, url: str) -> UploadOutcome:
        outcome = UploadOutcome.ok(url)
        if not self._registry.apply(entry, lambda e: e.succeed(url)):
            logger.debug("Entry %s removed during upload; result discarded", entry.entry_id)
            return outcome

        logger.info("Uploaded %s -> %s", entry.display_name, url)
        await self._dispatcher.dispatch_success(entry)
        return outcome

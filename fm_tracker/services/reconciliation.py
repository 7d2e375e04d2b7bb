"""Background poller that folds other clients' edits into the working copy."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import settings
from .station_client import StationApiClient, StationApiError
from .station_store import StationStore
from .station_types import StationId

logger = logging.getLogger(__name__)


class RecentChangesPoller:
    """Periodically fetch the recently-changed feed and apply it to a store."""

    def __init__(
        self,
        client: StationApiClient,
        store: StationStore,
        interval_seconds: Optional[float] = None,
        window_seconds: Optional[int] = None,
    ):
        self.client = client
        self.store = store
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.poll_interval_seconds
        )
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.recent_window_seconds
        )
        self._task: Optional["asyncio.Task[None]"] = None
        self._trigger = asyncio.Event()
        self.polls = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> List[StationId]:
        """Fetch one window of changes; returns the ids that actually changed."""
        self.polls += 1
        entries = await self.client.recently_changed(self.window_seconds)
        changed = self.store.apply_remote_changes(entries)
        if changed:
            logger.info("Reconciled %d station(s) from remote changes", len(changed))
        return changed

    def trigger(self) -> None:
        """Poll now instead of waiting for the next interval."""
        self._trigger.set()

    async def _loop(self) -> None:
        self._trigger.set()
        while True:
            await self._trigger.wait()
            self._trigger.clear()
            try:
                await self.poll_once()
            except StationApiError as exc:
                self.failures += 1
                logger.warning("Recent changes poll failed: %s", exc.message)
            except (KeyError, TypeError, ValueError):
                self.failures += 1
                logger.warning("Recent changes feed could not be applied", exc_info=True)
            try:
                await asyncio.wait_for(self._trigger.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                self._trigger.set()

    def start(self) -> None:
        if self.running:
            return
        self._trigger = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.debug("Recent changes poller started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.debug("Recent changes poller stopped")

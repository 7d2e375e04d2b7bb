"""One view session: initial load, live updates and teardown."""

from __future__ import annotations

import logging
from typing import Optional

from .geolocation import GeolocationProvider, LocationTracker
from .reconciliation import RecentChangesPoller
from .station_client import StationApiClient
from .station_store import StationStore, UpdatePolicy

logger = logging.getLogger(__name__)


class TrackerSession:
    """
    Ties a :class:`StationStore` to its poller and location tracker.

    Usage::

        async with TrackerSession(client, provider) as session:
            session.store.visible_stations()

    Entering performs the initial load and raises :class:`StationLoadError`
    when it fails. Leaving stops polling, releases the geolocation watch and
    clears the distance cache.
    """

    def __init__(
        self,
        client: StationApiClient,
        provider: Optional[GeolocationProvider] = None,
        policy: Optional[UpdatePolicy] = None,
        poll_interval_seconds: Optional[float] = None,
        poll: bool = True,
    ):
        self.client = client
        self.store = StationStore(client, policy=policy)
        self.poller = RecentChangesPoller(client, self.store, interval_seconds=poll_interval_seconds)
        self.tracker = LocationTracker(provider, on_location=self.store.set_user_location)
        self.poll = poll

    async def load(self):
        return await self.store.load()

    async def start(self) -> None:
        await self.load()
        await self.tracker.start()
        if self.poll:
            self.poller.start()
        logger.info("Tracker session started with %d stations", len(self.store.stations))

    async def close(self) -> None:
        await self.poller.stop()
        self.tracker.stop()
        await self.store.drain()
        self.store.close()
        logger.info("Tracker session closed")

    async def __aenter__(self) -> "TrackerSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

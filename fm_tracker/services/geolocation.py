"""Device location acquisition with graceful fallback."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Hashable, Optional, Protocol

from ..config import settings
from .station_types import UserLocation

logger = logging.getLogger(__name__)

LOW_ACCURACY_TIMEOUT = 10.0
HIGH_ACCURACY_TIMEOUT = 15.0
FIX_MAXIMUM_AGE = 60.0
WATCH_TIMEOUT = 30.0
WATCH_MAXIMUM_AGE = 30.0

LocationCallback = Callable[[UserLocation], None]


class GeolocationErrorCode(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


class GeolocationError(Exception):
    def __init__(self, code: GeolocationErrorCode, message: str = ""):
        self.code = GeolocationErrorCode(code)
        self.message = message or self.code.value.replace("_", " ")
        super().__init__(self.message)


class GeolocationProvider(Protocol):
    """What the tracker needs from a positioning source."""

    async def get_current_position(
        self, high_accuracy: bool, timeout: float, maximum_age: float
    ) -> UserLocation:
        ...

    def watch_position(
        self,
        on_position: LocationCallback,
        on_error: Callable[[GeolocationError], None],
        high_accuracy: bool = False,
        timeout: float = WATCH_TIMEOUT,
        maximum_age: float = WATCH_MAXIMUM_AGE,
    ) -> Hashable:
        ...

    def clear_watch(self, watch_id: Hashable) -> None:
        ...


def default_location() -> UserLocation:
    return UserLocation(
        latitude=settings.default_latitude,
        longitude=settings.default_longitude,
        accuracy=settings.default_accuracy,
    )


FALLBACK_MESSAGES = {
    GeolocationErrorCode.PERMISSION_DENIED: "Location access denied - using default location",
    GeolocationErrorCode.POSITION_UNAVAILABLE: "Location unavailable - using default location",
    GeolocationErrorCode.TIMEOUT: "Location request timed out - using default location",
}


class LocationTracker:
    """
    Obtain the user's position and keep it fresh.

    ``start()`` asks for a quick low-accuracy fix first, retries once with
    high accuracy, and settles on the default viewpoint when both fail. A
    low-accuracy watch keeps the location updated until ``stop()``.
    """

    def __init__(
        self,
        provider: Optional[GeolocationProvider],
        on_location: Optional[LocationCallback] = None,
        fallback: Optional[UserLocation] = None,
    ):
        self.provider = provider
        self.on_location = on_location
        self.fallback = fallback or default_location()
        self.location: Optional[UserLocation] = None
        self.source: Optional[str] = None
        self.last_error: Optional[GeolocationError] = None
        self._watch_id: Optional[Hashable] = None

    @property
    def watching(self) -> bool:
        return self._watch_id is not None

    def _set_location(self, location: UserLocation, source: str) -> None:
        self.location = location
        self.source = source
        if self.on_location is not None:
            self.on_location(location)

    async def _fix(self, high_accuracy: bool, timeout: float) -> UserLocation:
        try:
            return await asyncio.wait_for(
                self.provider.get_current_position(high_accuracy, timeout, FIX_MAXIMUM_AGE),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GeolocationError(GeolocationErrorCode.TIMEOUT) from exc

    async def start(self) -> Optional[UserLocation]:
        if self.provider is None:
            logger.warning("Geolocation not supported; continuing without a location")
            return None

        try:
            location = await self._fix(high_accuracy=False, timeout=LOW_ACCURACY_TIMEOUT)
            self._set_location(location, "low_accuracy")
        except GeolocationError as exc:
            logger.info("Low accuracy geolocation failed, trying high accuracy: %s", exc.message)
            try:
                location = await self._fix(high_accuracy=True, timeout=HIGH_ACCURACY_TIMEOUT)
                self._set_location(location, "high_accuracy")
            except GeolocationError as high_exc:
                self.last_error = high_exc
                logger.info(FALLBACK_MESSAGES[high_exc.code])
                self._set_location(self.fallback, "default")

        if self._watch_id is None:
            self._watch_id = self.provider.watch_position(
                self._on_watch_position,
                self._on_watch_error,
                high_accuracy=False,
                timeout=WATCH_TIMEOUT,
                maximum_age=WATCH_MAXIMUM_AGE,
            )
        return self.location

    def _on_watch_position(self, location: UserLocation) -> None:
        self._set_location(location, "watch")

    def _on_watch_error(self, error: GeolocationError) -> None:
        self.last_error = error
        if error.code is GeolocationErrorCode.TIMEOUT:
            logger.debug("Geolocation watch timed out")
            return
        logger.info("Geolocation watch: %s", error.message)

    def stop(self) -> None:
        if self._watch_id is None or self.provider is None:
            return
        watch_id, self._watch_id = self._watch_id, None
        self.provider.clear_watch(watch_id)
        logger.debug("Geolocation watch %s cleared", watch_id)

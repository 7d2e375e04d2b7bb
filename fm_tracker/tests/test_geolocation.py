"""Tests for location acquisition and the position watch."""

import logging

import pytest

from fm_tracker.services import geolocation
from fm_tracker.services.geolocation import (
    GeolocationError,
    GeolocationErrorCode,
    LocationTracker,
    default_location,
)
from fm_tracker.services.station_types import UserLocation
from fm_tracker.tests.factories import HERE, PRECISE, FakeProvider


@pytest.mark.asyncio
async def test_low_accuracy_fix_and_watch():
    provider = FakeProvider()
    seen = []
    tracker = LocationTracker(provider, on_location=seen.append)

    location = await tracker.start()

    assert location == HERE
    assert tracker.source == "low_accuracy"
    assert seen == [HERE]
    assert provider.requests == [(False, 10.0, 60.0)]
    assert tracker.watching
    _, _, high_accuracy, timeout, maximum_age = provider.watches[1]
    assert (high_accuracy, timeout, maximum_age) == (False, 30.0, 30.0)


@pytest.mark.asyncio
async def test_falls_back_to_high_accuracy():
    provider = FakeProvider(low=GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE))
    tracker = LocationTracker(provider)

    location = await tracker.start()

    assert location == PRECISE
    assert tracker.source == "high_accuracy"
    assert [request[0] for request in provider.requests] == [False, True]


@pytest.mark.asyncio
async def test_falls_back_to_default_location():
    provider = FakeProvider(
        low=GeolocationError(GeolocationErrorCode.PERMISSION_DENIED),
        high=GeolocationError(GeolocationErrorCode.PERMISSION_DENIED),
    )
    tracker = LocationTracker(provider)

    location = await tracker.start()

    assert location == default_location()
    assert (location.latitude, location.longitude, location.accuracy) == (13.7563, 100.5018, 1000)
    assert tracker.source == "default"
    assert tracker.last_error.code is GeolocationErrorCode.PERMISSION_DENIED
    assert tracker.watching


@pytest.mark.asyncio
async def test_hanging_provider_times_out(monkeypatch):
    monkeypatch.setattr(geolocation, "LOW_ACCURACY_TIMEOUT", 0.01)
    monkeypatch.setattr(geolocation, "HIGH_ACCURACY_TIMEOUT", 0.01)
    fallback = UserLocation(18.79, 98.98, accuracy=1000)
    tracker = LocationTracker(FakeProvider(low="hang", high="hang"), fallback=fallback)

    location = await tracker.start()

    assert location == fallback
    assert tracker.last_error.code is GeolocationErrorCode.TIMEOUT


@pytest.mark.asyncio
async def test_watch_updates_location_and_stop_clears_it():
    provider = FakeProvider()
    seen = []
    tracker = LocationTracker(provider, on_location=seen.append)
    await tracker.start()

    on_position, _, _, _, _ = provider.watches[1]
    moved = UserLocation(13.80, 100.55)
    on_position(moved)

    assert tracker.location == moved
    assert tracker.source == "watch"
    assert seen[-1] == moved

    tracker.stop()
    tracker.stop()

    assert provider.cleared == [1]
    assert not tracker.watching


@pytest.mark.asyncio
async def test_watch_timeout_is_logged_at_debug(caplog):
    provider = FakeProvider()
    tracker = LocationTracker(provider)
    await tracker.start()
    _, on_error, _, _, _ = provider.watches[1]

    with caplog.at_level(logging.DEBUG, logger="fm_tracker.services.geolocation"):
        on_error(GeolocationError(GeolocationErrorCode.TIMEOUT))
        on_error(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "no fix"))

    levels = [(record.levelno, record.getMessage()) for record in caplog.records]
    assert (logging.DEBUG, "Geolocation watch timed out") in levels
    assert (logging.INFO, "Geolocation watch: no fix") in levels
    assert tracker.location == HERE


@pytest.mark.asyncio
async def test_without_provider():
    tracker = LocationTracker(None)

    assert await tracker.start() is None
    assert tracker.location is None
    assert not tracker.watching
    tracker.stop()


def test_error_message_defaults_to_code():
    error = GeolocationError("timeout")

    assert error.code is GeolocationErrorCode.TIMEOUT
    assert str(error) == "timeout"

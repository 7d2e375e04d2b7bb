"""Client-side working copy of the station list and the optimistic update flow.

Everything here runs on one asyncio event loop. Mutations of the working
copy are synchronous; the only suspension points are the remote calls made
by the :class:`StationApiClient`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from ..config import settings
from .distance_cache import DistanceCache
from .station_client import (
    INVALID_RESPONSE_CODE,
    StationApiClient,
    StationApiError,
    StationLoadError,
)
from .station_codec import StationCodec, codec as default_codec
from .station_filters import StationFilter, available_cities, reconcile_filters
from .station_grouping import MapPoint, build_map_points
from .station_types import (
    DETAIL_TAGS,
    FilterState,
    InspectionStatus,
    Station,
    StationId,
    StationNotFoundError,
    UserLocation,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("on_air", "inspection", "details")
RECONCILABLE_FIELDS = ("on_air", "inspection", "date_inspected", "details", "unwanted", "submit_request")

Listener = Callable[[List[StationId]], None]


class UpdatePolicy(str, Enum):
    """What to do with an optimistic value when persisting it fails."""

    KEEP = "keep"
    ROLLBACK = "rollback"


class UpdateState(str, Enum):
    IDLE = "idle"
    OPTIMISTICALLY_APPLIED = "optimistically_applied"
    SERVER_CONFIRMED = "server_confirmed"
    SERVER_REJECTED = "server_rejected"
    NETWORK_ERROR = "network_error"


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class PendingUpdate:
    """One in-flight update and where it is in its lifecycle."""

    station_id: StationId
    changes: Dict[str, Any]
    previous: Dict[str, Any]
    version: int
    state: UpdateState = UpdateState.IDLE
    error: Optional[StationApiError] = None
    stale: bool = False
    rolled_back: bool = False
    task: Optional["asyncio.Task[None]"] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.state not in (UpdateState.IDLE, UpdateState.OPTIMISTICALLY_APPLIED)

    async def wait(self) -> "PendingUpdate":
        if self.task is not None:
            await self.task
        return self


def _validate_changes(changes: Mapping[str, Any]) -> None:
    if not changes:
        raise ValueError("No fields to update")
    for name, value in changes.items():
        if name not in UPDATABLE_FIELDS:
            raise ValueError(f"Field cannot be updated: {name}")
        if name == "on_air" and not isinstance(value, bool):
            raise ValueError(f"on_air must be a boolean, got {value!r}")
        if name == "inspection" and not isinstance(value, InspectionStatus):
            raise ValueError(f"inspection must be an InspectionStatus, got {value!r}")
        if name == "details" and value not in (None, "") and value not in DETAIL_TAGS:
            raise ValueError(f"Unknown detail tag: {value!r}")


class StationStore:
    """Working copy, filter state and optimistic updates for one view session."""

    def __init__(
        self,
        client: Optional[StationApiClient] = None,
        policy: Optional[UpdatePolicy] = None,
        cache: Optional[DistanceCache] = None,
        station_codec: Optional[StationCodec] = None,
    ):
        self.client = client
        if policy is None:
            policy = UpdatePolicy.ROLLBACK if settings.optimistic_rollback else UpdatePolicy.KEEP
        self.policy = policy
        self.cache = cache if cache is not None else DistanceCache(settings.distance_cache_size)
        self.filter = StationFilter(self.cache)
        self.codec = station_codec or default_codec

        self.filters = FilterState()
        self.user_location: Optional[UserLocation] = None
        self.selected_id: Optional[StationId] = None
        self.load_state = LoadState.IDLE
        self.load_error: Optional[str] = None

        self._stations: List[Station] = []
        self._positions: Dict[StationId, int] = {}
        self._versions: Dict[StationId, int] = {}
        self._listeners: List[Listener] = []
        self._inflight: Set["asyncio.Task[None]"] = set()

    # ------------------------------------------------------------------
    # Working copy
    # ------------------------------------------------------------------
    @property
    def stations(self) -> List[Station]:
        return list(self._stations)

    def set_stations(self, stations: Iterable[Station]) -> None:
        self._stations = list(stations)
        self._positions = {station.id: index for index, station in enumerate(self._stations)}
        self._versions = {station.id: 0 for station in self._stations}
        self.filters = reconcile_filters(self.filters, self._stations)
        self._notify([station.id for station in self._stations])

    def get(self, station_id: StationId) -> Station:
        position = self._positions.get(station_id)
        if position is None:
            raise StationNotFoundError(f"Station {station_id} not found")
        return self._stations[position]

    def version(self, station_id: StationId) -> int:
        return self._versions.get(station_id, 0)

    async def load(self) -> List[Station]:
        """
        Initial bulk load.

        Raises:
            StationLoadError: The list could not be fetched. The store is left
                in :attr:`LoadState.FAILED` rather than showing an empty list.
        """
        if self.client is None:
            raise RuntimeError("StationStore has no API client configured")

        self.load_state = LoadState.LOADING
        self.load_error = None
        try:
            stations = await self.client.list_stations()
        except StationApiError as exc:
            self.load_state = LoadState.FAILED
            self.load_error = exc.user_message
            logger.error("Initial station load failed: %s", exc.message)
            raise StationLoadError(
                exc.message,
                status_code=exc.status_code,
                code=exc.code,
                details=exc.details,
                hint=exc.hint,
            ) from exc

        self.set_stations(stations)
        self.load_state = LoadState.READY
        logger.info("Loaded %d stations", len(stations))
        return self.stations

    # ------------------------------------------------------------------
    # Selection, filters, location
    # ------------------------------------------------------------------
    def select(self, station_id: Optional[StationId]) -> Optional[Station]:
        if station_id is not None:
            self.get(station_id)
        self.selected_id = station_id
        return self.selected

    @property
    def selected(self) -> Optional[Station]:
        if self.selected_id is None:
            return None
        position = self._positions.get(self.selected_id)
        return self._stations[position] if position is not None else None

    def set_filters(self, filters: FilterState) -> FilterState:
        """Install new filters, dropping a city that is not in the province."""
        self.filters = reconcile_filters(filters, self._stations)
        return self.filters

    def clear_filters(self) -> None:
        self.filters = FilterState()
        self.cache.clear()

    def set_user_location(self, location: Optional[UserLocation]) -> None:
        self.user_location = location

    def all_cities(self) -> List[str]:
        return sorted({station.city for station in self._stations if station.city})

    def provinces(self) -> List[str]:
        return sorted({station.state for station in self._stations if station.state})

    def city_options(self) -> List[str]:
        return available_cities(self._stations, self.filters.province, self.all_cities())

    def visible_stations(self) -> List[Station]:
        return self.filter.apply(self._stations, self.filters, self.user_location)

    def map_points(self) -> List[MapPoint]:
        return build_map_points(self.visible_stations(), self.user_location, self.cache)

    def distance_to(self, station_id: StationId) -> Optional[float]:
        if self.user_location is None:
            return None
        return self.filter.distance_to(self.get(station_id), self.user_location)

    def metrics(self) -> Dict[str, Any]:
        visible = self.visible_stations()
        return self.filter.metrics(self._stations, visible, self.filters)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, station_ids: List[StationId]) -> None:
        if not station_ids:
            return
        for listener in list(self._listeners):
            listener(station_ids)

    def _replace(self, station_id: StationId, changes: Mapping[str, Any]) -> bool:
        """Swap in a new station value when any field actually differs."""
        current = self.get(station_id)
        delta = {
            name: value for name, value in changes.items() if getattr(current, name) != value
        }
        if not delta:
            return False
        self._stations[self._positions[station_id]] = current.with_changes(**delta)
        return True

    # ------------------------------------------------------------------
    # Optimistic updates
    # ------------------------------------------------------------------
    def apply_update(self, station_id: StationId, **changes: Any) -> PendingUpdate:
        """
        Apply ``changes`` to the working copy now and persist them in the
        background.

        Must be called from a running event loop. The returned
        :class:`PendingUpdate` can be awaited with :meth:`PendingUpdate.wait`.

        Raises:
            StationNotFoundError: The station is not in the working copy.
            ValueError: A field is not updatable or its value is invalid.
        """
        if self.client is None:
            raise RuntimeError("StationStore has no API client configured")
        _validate_changes(changes)
        current = self.get(station_id)

        version = self._versions.get(station_id, 0) + 1
        self._versions[station_id] = version
        pending = PendingUpdate(
            station_id=station_id,
            changes=dict(changes),
            previous={name: getattr(current, name) for name in changes},
            version=version,
        )

        if self._replace(station_id, changes):
            self._notify([station_id])
        pending.state = UpdateState.OPTIMISTICALLY_APPLIED
        logger.debug("Optimistic update applied", extra={"station_id": station_id, "version": version})

        task = asyncio.get_running_loop().create_task(self._persist(pending))
        pending.task = task
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return pending

    async def update_station(self, station_id: StationId, **changes: Any) -> PendingUpdate:
        """Apply an update and wait until the server has answered."""
        pending = self.apply_update(station_id, **changes)
        return await pending.wait()

    def toggle_on_air(self, station_id: StationId) -> PendingUpdate:
        return self.apply_update(station_id, on_air=not self.get(station_id).on_air)

    def toggle_inspection(self, station_id: StationId) -> PendingUpdate:
        return self.apply_update(station_id, inspection=self.get(station_id).inspection.toggled())

    def toggle_detail(self, station_id: StationId, tag: str) -> PendingUpdate:
        """Set ``tag`` as the station's detail, or clear it if already set."""
        current = self.get(station_id).details
        return self.apply_update(station_id, details=None if current == tag else tag)

    async def _persist(self, pending: PendingUpdate) -> None:
        try:
            row = await self.client.patch_station(pending.station_id, pending.changes)
        except StationApiError as exc:
            self._fail(pending, exc)
            return

        try:
            confirmed = self.codec.canonical_fields(row)
        except (KeyError, TypeError, ValueError) as exc:
            self._fail(
                pending,
                StationApiError(
                    f"Unreadable row returned for station {pending.station_id}",
                    status_code=200,
                    code=INVALID_RESPONSE_CODE,
                    details=repr(exc),
                ),
            )
            return

        pending.state = UpdateState.SERVER_CONFIRMED
        if self._versions.get(pending.station_id) != pending.version:
            pending.stale = True
            logger.info(
                "Discarding stale response for station %s (version %s)",
                pending.station_id, pending.version,
            )
            return
        if pending.station_id not in self._positions:
            return
        if self._replace(pending.station_id, confirmed):
            self._notify([pending.station_id])

    def _fail(self, pending: PendingUpdate, exc: StationApiError) -> None:
        pending.error = exc
        if exc.is_network_error:
            pending.state = UpdateState.NETWORK_ERROR
            logger.warning(
                "Network error updating station %s, keeping local value: %s",
                pending.station_id, exc.message,
            )
        else:
            pending.state = UpdateState.SERVER_REJECTED
            logger.warning(
                "Server rejected update for station %s (%s): %s",
                pending.station_id, exc.status_code, exc.message,
            )
        if self.policy is UpdatePolicy.ROLLBACK:
            self._rollback(pending)

    def _rollback(self, pending: PendingUpdate) -> None:
        if self._versions.get(pending.station_id) != pending.version:
            # A newer local edit owns these fields now.
            pending.stale = True
            return
        if pending.station_id not in self._positions:
            return
        if self._replace(pending.station_id, pending.previous):
            self._notify([pending.station_id])
        pending.rolled_back = True

    async def drain(self) -> None:
        """Wait for every in-flight update to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    def apply_remote_changes(self, entries: Iterable[Mapping[str, Any]]) -> List[StationId]:
        """
        Overwrite local fields with server state.

        Each entry holds an ``id`` plus station attributes. A station is only
        replaced, and listeners only hear about it, when a value differs.
        """
        changed: List[StationId] = []
        for entry in entries:
            station_id = entry.get("id")
            if station_id not in self._positions:
                continue
            fields = {
                name: value for name, value in entry.items() if name in RECONCILABLE_FIELDS
            }
            if self._replace(station_id, fields):
                changed.append(station_id)
        self._notify(changed)
        return changed

    def close(self) -> None:
        self.cache.clear()
        self._listeners.clear()

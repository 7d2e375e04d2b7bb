"""Coordinate grouping and map marker descriptions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .distance_cache import DistanceCache
from .geo_service import GeoService
from .station_filters import format_frequency
from .station_types import Station, SubmitRequest, UserLocation


class MarkerIcon(str, Enum):
    """Icon categories, listed in evaluation precedence."""

    NOT_SUBMITTED = "not_submitted"
    OFF_AIR = "off_air"
    INSPECTED = "inspected"
    NOT_INSPECTED = "not_inspected"


def coordinate_key(station: Station) -> str:
    # Exact textual coordinates: near-miss duplicates stay separate points.
    return f"{station.latitude},{station.longitude}"


def group_by_coordinates(stations: Sequence[Station]) -> Dict[str, List[Station]]:
    """Bucket stations that report identical coordinates.

    Keys keep first-seen order and each bucket keeps input order.
    """
    groups: Dict[str, List[Station]] = {}
    for station in stations:
        groups.setdefault(coordinate_key(station), []).append(station)
    return groups


def marker_icon(station: Station) -> MarkerIcon:
    if station.submit_request is SubmitRequest.NOT_SUBMITTED:
        return MarkerIcon.NOT_SUBMITTED
    if not station.on_air:
        return MarkerIcon.OFF_AIR
    if station.inspection.is_inspected:
        return MarkerIcon.INSPECTED
    return MarkerIcon.NOT_INSPECTED


@dataclass
class MapPoint:
    """Everything a renderer needs to draw one marker."""

    key: str
    latitude: float
    longitude: float
    stations: List[Station]
    icon: MarkerIcon
    distance_km: Optional[float] = None

    @property
    def count(self) -> int:
        return len(self.stations)

    @property
    def is_cluster(self) -> bool:
        return len(self.stations) > 1

    @property
    def representative(self) -> Station:
        return self.stations[0]

    @property
    def is_main_station(self) -> bool:
        return self.representative.is_main_station

    @property
    def title(self) -> str:
        if self.is_cluster:
            return f"{self.count} stations"
        station = self.representative
        return f"{station.name} FM {format_frequency(station.frequency)}"

    @property
    def label(self) -> str:
        station = self.representative
        if self.is_cluster:
            return f"{self.count} stations at {station.city}, {station.state}"
        return f"{station.name} - {station.city}, {station.state}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "icon": self.icon.value,
            "count": self.count,
            "is_cluster": self.is_cluster,
            "is_main_station": self.is_main_station,
            "title": self.title,
            "label": self.label,
            "distance_km": self.distance_km,
            "station_ids": [station.id for station in self.stations],
        }


def build_map_points(
    stations: Sequence[Station],
    user_location: Optional[UserLocation] = None,
    cache: Optional[DistanceCache] = None,
) -> List[MapPoint]:
    """Turn a station list into one :class:`MapPoint` per coordinate group.

    The icon of a cluster follows its first station.
    """
    points: List[MapPoint] = []
    for key, group in group_by_coordinates(stations).items():
        first = group[0]
        distance = None
        if user_location is not None:
            if cache is not None:
                distance = cache.get_distance(
                    user_location.latitude, user_location.longitude,
                    first.latitude, first.longitude,
                )
            else:
                distance = GeoService.haversine_distance(
                    user_location.latitude, user_location.longitude,
                    first.latitude, first.longitude,
                )
        points.append(
            MapPoint(
                key=key,
                latitude=first.latitude,
                longitude=first.longitude,
                stations=list(group),
                icon=marker_icon(first),
                distance_km=distance,
            )
        )
    return points


@dataclass
class GroupPage:
    stations: List[Station]
    page: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages - 1


def paginate_group(stations: Sequence[Station], page: int = 0, page_size: int = 3) -> GroupPage:
    """Slice a clustered popup into pages; ``page`` is clamped into range."""
    if page_size < 1:
        raise ValueError("page_size must be positive")
    total_pages = max(1, math.ceil(len(stations) / page_size))
    page = min(max(page, 0), total_pages - 1)
    start = page * page_size
    return GroupPage(
        stations=list(stations[start:start + page_size]),
        page=page,
        total_pages=total_pages,
    )

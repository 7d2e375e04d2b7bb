"""Filtering and distance sorting over the in-memory station list."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import settings
from .distance_cache import DistanceCache
from .station_types import FilterState, Station, SubmitRequest, UserLocation

Predicate = Callable[[Station], bool]


def format_frequency(value: float) -> str:
    """Render a frequency the way it is shown to users (``93.0`` -> ``"93"``)."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def matches_search(station: Station, query: str) -> bool:
    """Case-insensitive substring search across the searchable fields.

    A query without a leading ``#`` is also tried as a hashtag against
    ``details``, so ``deviation`` finds a station tagged ``#deviation``.
    """
    needle = query.lower()
    if (
        _contains(station.name, needle)
        or _contains(station.description, needle)
        or _contains(station.genre, needle)
        or _contains(station.city, needle)
        or _contains(station.state, needle)
        or _contains(station.details, needle)
        or query in format_frequency(station.frequency)
    ):
        return True
    if not needle.startswith("#"):
        return _contains(station.details, f"#{needle}")
    return False


class StationFilter:
    """Applies a :class:`FilterState` and sorts by distance to the user."""

    def __init__(self, cache: Optional[DistanceCache] = None):
        self.cache = cache if cache is not None else DistanceCache(settings.distance_cache_size)

    def predicates(self, filters: FilterState) -> List[Predicate]:
        """Return the active predicates, most selective first, search last."""
        predicates: List[Predicate] = []

        if filters.city is not None:
            predicates.append(lambda s: s.city == filters.city)
        if filters.province is not None:
            predicates.append(lambda s: s.state == filters.province)
        if filters.inspection_status is not None:
            predicates.append(lambda s: s.inspection == filters.inspection_status)
        if filters.on_air is not None:
            predicates.append(lambda s: s.on_air is filters.on_air)
        # Only the "not submitted" selection narrows the list; "submitted"
        # and "undecided" leave it untouched.
        if filters.submit_request is SubmitRequest.NOT_SUBMITTED:
            predicates.append(lambda s: s.submit_request is SubmitRequest.NOT_SUBMITTED)
        if filters.search is not None:
            query = filters.search
            predicates.append(lambda s: matches_search(s, query))

        return predicates

    def filter_stations(self, stations: Sequence[Station], filters: FilterState) -> List[Station]:
        if not stations:
            return []

        filtered = list(stations)
        for predicate in self.predicates(filters):
            filtered = [station for station in filtered if predicate(station)]
            if not filtered:
                break
        return filtered

    def distance_to(self, station: Station, user_location: UserLocation) -> float:
        return self.cache.get_distance(
            user_location.latitude,
            user_location.longitude,
            station.latitude,
            station.longitude,
        )

    def sort_by_distance(self, stations: Sequence[Station], user_location: UserLocation) -> List[Station]:
        """Stable ascending sort; ties keep their incoming order."""
        distances = [self.distance_to(station, user_location) for station in stations]
        order = sorted(range(len(stations)), key=lambda index: distances[index])
        return [stations[index] for index in order]

    def apply(
        self,
        stations: Sequence[Station],
        filters: FilterState,
        user_location: Optional[UserLocation] = None,
    ) -> List[Station]:
        """Filter then, when a location is known, sort nearest first."""
        filtered = self.filter_stations(stations, filters)
        if user_location is None or not filtered:
            return filtered
        return self.sort_by_distance(filtered, user_location)

    def metrics(
        self,
        stations: Sequence[Station],
        filtered: Sequence[Station],
        filters: FilterState,
    ) -> Dict[str, Any]:
        return {
            "total_stations": len(stations),
            "filtered_stations": len(filtered),
            "distance_cache": self.cache.stats(),
            "active_filters": filters.active_count,
        }


def available_cities(
    stations: Sequence[Station],
    province: Optional[str],
    all_cities: Sequence[str],
) -> List[str]:
    """Cities selectable for ``province``, in first-seen order."""
    if not province:
        return list(all_cities)

    cities: Dict[str, None] = {}
    for station in stations:
        if station.state == province and station.city:
            cities.setdefault(station.city, None)
    return list(cities)


def reconcile_filters(filters: FilterState, stations: Sequence[Station]) -> FilterState:
    """Clear a city selection that does not belong to the selected province."""
    if filters.province is None or filters.city is None:
        return filters

    in_province = any(
        station.state == filters.province and station.city == filters.city
        for station in stations
    )
    if in_province:
        return filters
    return filters.with_changes(city=None)

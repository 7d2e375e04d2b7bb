"""Geolocation helpers for distances between stations and users."""

from typing import List, Optional, Sequence, Tuple
from math import radians, cos, sin, asin, sqrt

from .station_types import Station

EARTH_RADIUS_KM = 6371


class GeoService:
    """Service for geolocation calculations."""

    @staticmethod
    def haversine_distance(
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float
    ) -> float:
        """
        Calculate the great circle distance between two points
        on the earth (specified in decimal degrees).

        Returns distance in kilometers. Non-finite inputs produce ``nan``;
        callers are expected to guard against them.
        """
        # Convert decimal degrees to radians
        lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])

        # Haversine formula
        dlon = lon2 - lon1
        dlat = lat2 - lat1
        a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
        c = 2 * asin(sqrt(a))

        return c * EARTH_RADIUS_KM

    @staticmethod
    def find_nearest_stations(
        user_lat: float,
        user_lon: float,
        stations: Sequence[Station],
        max_results: int = 10,
        max_distance_km: Optional[float] = None
    ) -> List[Tuple[Station, float]]:
        """
        Find nearest stations to user location.

        Args:
            user_lat: User latitude
            user_lon: User longitude
            stations: Stations to rank
            max_results: Maximum number of results to return
            max_distance_km: Optional maximum distance filter in kilometers

        Returns:
            List of tuples (station, distance_km) sorted by distance
        """
        stations_with_distance = []

        for station in stations:
            if station.latitude is None or station.longitude is None:
                continue

            distance = GeoService.haversine_distance(
                user_lat,
                user_lon,
                station.latitude,
                station.longitude
            )

            if max_distance_km is None or distance <= max_distance_km:
                stations_with_distance.append((station, distance))

        stations_with_distance.sort(key=lambda x: x[1])

        return stations_with_distance[:max_results]

"""Bounded in-memory cache for user-to-station distances."""

from typing import Dict

from .geo_service import GeoService


class DistanceCache:
    """Memoizes Haversine distances keyed by coordinates rounded to 4 places.

    Two coordinate pairs that round to the same key share one cached value.
    The distance itself is computed from the rounded coordinates, so a hit
    always equals a fresh computation for the same key.

    Eviction approximates LRU by insertion order: once ``max_size`` entries
    are stored, the next miss keeps only the most recently inserted half.
    """

    def __init__(self, max_size: int = 1000):
        if max_size < 2:
            raise ValueError("max_size must be at least 2")
        self._cache: Dict[str, float] = {}
        self._max_size = max_size

    @staticmethod
    def cache_key(lat1: float, lon1: float, lat2: float, lon2: float) -> str:
        return f"{lat1:.4f},{lon1:.4f}-{lat2:.4f},{lon2:.4f}"

    def get_distance(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Return the cached distance in km, computing and storing it on a miss."""
        key = self.cache_key(lat1, lon1, lat2, lon2)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if len(self._cache) >= self._max_size:
            self._evict()

        distance = GeoService.haversine_distance(
            round(lat1, 4), round(lon1, 4), round(lat2, 4), round(lon2, 4)
        )
        self._cache[key] = distance
        return distance

    def _evict(self) -> None:
        keep = self._max_size // 2
        retained = list(self._cache.items())[-keep:]
        self._cache = dict(retained)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._cache), "max_size": self._max_size}

    def __len__(self) -> int:
        return len(self._cache)

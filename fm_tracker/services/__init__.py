"""Station domain services: filtering, grouping, persistence and update flow."""

from .distance_cache import DistanceCache
from .geo_service import GeoService
from .station_client import StationApiClient, StationApiError, StationLoadError
from .station_filters import StationFilter
from .station_repository import StationRepository
from .station_store import PendingUpdate, StationStore, UpdatePolicy, UpdateState
from .station_types import StationNotFoundError

__all__ = [
    "DistanceCache",
    "GeoService",
    "PendingUpdate",
    "StationApiClient",
    "StationApiError",
    "StationFilter",
    "StationLoadError",
    "StationNotFoundError",
    "StationRepository",
    "StationStore",
    "UpdatePolicy",
    "UpdateState",
]

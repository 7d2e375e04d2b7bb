"""API routes for FM stations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db_session
from ..services.distance_cache import DistanceCache
from ..services.geo_service import GeoService
from ..services.navigation import (
    TRAVEL_MODES,
    NavigationError,
    build_directions_url,
    fallback_navigation_options,
)
from ..services.station_codec import codec, parse_station_id
from ..services.station_filters import StationFilter
from ..services.station_grouping import build_map_points
from ..services.station_repository import StationRepository, record_rows
from ..services.station_types import FilterState, Station, StationNotFoundError, UserLocation
from .dependencies import require_api_token
from .errors import ApiError

router = APIRouter()
logger = logging.getLogger("stations")


class StationPatch(BaseModel):
    """PATCH body; only the fields present in the request are applied."""

    model_config = ConfigDict(extra="ignore")

    onAir: Optional[bool] = None
    inspection68: Optional[Union[bool, str]] = None
    details: Optional[str] = None


class StationQuery:
    """Filter query parameters shared by the list and map endpoints."""

    def __init__(
        self,
        province: Optional[str] = Query(None, description="Province name"),
        city: Optional[str] = Query(None, description="District name"),
        inspection: Optional[str] = Query(None, description="Inspection status (ตรวจแล้ว, ยังไม่ตรวจ, ...)"),
        on_air: Optional[bool] = Query(None, description="On-air status"),
        submit_request: Optional[str] = Query(None, description="Submission status (ยื่น, ไม่ยื่น)"),
        search: Optional[str] = Query(None, description="Free-text search"),
        lat: Optional[float] = Query(None, ge=-90, le=90, description="User latitude"),
        lon: Optional[float] = Query(None, ge=-180, le=180, description="User longitude"),
    ):
        self.filters = FilterState(
            on_air=on_air,
            city=city,
            province=province,
            inspection_status=codec.decode_inspection(inspection) if inspection else None,
            submit_request=codec.decode_submit_request(submit_request) if submit_request else None,
            search=search,
        )
        self.location = (
            UserLocation(latitude=lat, longitude=lon) if lat is not None and lon is not None else None
        )

    @property
    def is_active(self) -> bool:
        return not self.filters.is_empty or self.location is not None


def _station_id(raw: str) -> int:
    try:
        return parse_station_id(raw)
    except ValueError as exc:
        raise ApiError(400, "Invalid station ID", code="INVALID_ID", details=str(exc)) from exc


async def _load_stations(db: AsyncSession) -> List[Dict[str, Any]]:
    try:
        records = await StationRepository(db).list_stations()
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch stations")
        raise ApiError(500, "Failed to fetch stations", code="FETCH_FAILED", details=str(exc)) from exc
    return record_rows(records)


def _apply_query(rows: List[Dict[str, Any]], query: StationQuery) -> List[Station]:
    stations = [codec.from_row(row) for row in rows]
    pipeline = StationFilter(DistanceCache(settings.distance_cache_size))
    return pipeline.apply(stations, query.filters, query.location)


@router.get("")
async def list_stations(
    query: StationQuery = Depends(),
    db: AsyncSession = Depends(get_db_session),
):
    """
    List stations ordered by name.

    Filter parameters run the same pipeline the client uses; with ``lat`` and
    ``lon`` the result is sorted nearest first.
    """
    rows = await _load_stations(db)
    if query.is_active:
        by_id = {row["id_fm"]: row for row in rows}
        rows = [by_id[station.id] for station in _apply_query(rows, query)]
    return {"stations": rows, "count": len(rows)}


@router.get("/options")
async def filter_options(db: AsyncSession = Depends(get_db_session)):
    """Distinct values for the filter dropdowns."""
    repository = StationRepository(db)
    return {
        "cities": await repository.distinct_values("district"),
        "provinces": await repository.distinct_values("province"),
        "inspection_statuses": await repository.distinct_values("inspection_68"),
        "on_air_statuses": await repository.distinct_values("on_air"),
        "genres": await repository.distinct_values("type"),
    }


@router.get("/map-points")
async def map_points(
    query: StationQuery = Depends(),
    db: AsyncSession = Depends(get_db_session),
):
    """One marker per distinct coordinate pair."""
    rows = await _load_stations(db)
    cache = DistanceCache(settings.distance_cache_size)
    stations = StationFilter(cache).apply(
        [codec.from_row(row) for row in rows], query.filters, query.location
    )
    points = [point.to_dict() for point in build_map_points(stations, query.location, cache)]
    return {"points": points, "count": len(points)}


@router.get("/nearest")
async def nearest_stations(
    lat: float = Query(..., ge=-90, le=90, description="User latitude"),
    lon: float = Query(..., ge=-180, le=180, description="User longitude"),
    max_results: int = Query(10, ge=1, le=50, description="Maximum number of results"),
    max_distance: Optional[float] = Query(None, gt=0, description="Maximum distance in km"),
    db: AsyncSession = Depends(get_db_session),
):
    """Stations closest to a point, with their distance."""
    rows = await _load_stations(db)
    by_id = {row["id_fm"]: row for row in rows}
    nearest = GeoService.find_nearest_stations(
        lat,
        lon,
        [codec.from_row(row) for row in rows],
        max_results,
        max_distance,
    )
    results = [
        {
            "station": by_id[station.id],
            "distance_km": round(distance, 2),
            "distance_m": round(distance * 1000, 0),
        }
        for station, distance in nearest
    ]
    return {"results": results, "count": len(results)}


@router.get("/recent")
async def recent_updates(
    seconds: int = Query(settings.recent_window_seconds, ge=1, le=3600),
    db: AsyncSession = Depends(get_db_session),
):
    """Stations changed in the last ``seconds`` (used for polling)."""
    try:
        records = await StationRepository(db).recently_changed(seconds)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch recent updates")
        raise ApiError(500, "Failed to fetch recent updates", code="FETCH_FAILED", details=str(exc)) from exc

    updates = [codec.to_recent_entry(record.to_row()) for record in records]
    return {
        "updated": updates,
        "count": len(updates),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/{station_id}")
async def get_station(station_id: str, db: AsyncSession = Depends(get_db_session)):
    numeric_id = _station_id(station_id)
    try:
        record = await StationRepository(db).get_station(numeric_id)
    except StationNotFoundError as exc:
        raise ApiError(404, "Station not found", code="NOT_FOUND") from exc
    return {"station": record.to_row()}


@router.patch("/{station_id}", dependencies=[Depends(require_api_token)])
async def update_station(
    station_id: str,
    body: StationPatch,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Update a station's on-air flag, inspection status or details tag.

    Marking a station inspected stamps today's UTC date; marking it not
    inspected clears the date.
    """
    numeric_id = _station_id(station_id)
    columns = codec.request_to_columns(body.model_dump(exclude_unset=True))

    try:
        record = await StationRepository(db).update_station(numeric_id, columns)
        await db.commit()
    except ValueError as exc:
        raise ApiError(400, str(exc), code="NO_FIELDS") from exc
    except StationNotFoundError as exc:
        raise ApiError(404, "Station not found", code="NOT_FOUND") from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to update station %s", numeric_id)
        raise ApiError(500, "Failed to update station", code="UPDATE_FAILED", details=str(exc)) from exc

    return {"success": True, "data": record.to_row()}


@router.get("/{station_id}/directions")
async def station_directions(
    station_id: str,
    travel_mode: str = Query("driving", description=f"One of {', '.join(TRAVEL_MODES)}"),
    avoid_highways: bool = Query(False),
    avoid_tolls: bool = Query(False),
    db: AsyncSession = Depends(get_db_session),
):
    """Directions link to the station plus alternative map providers."""
    numeric_id = _station_id(station_id)
    try:
        record = await StationRepository(db).get_station(numeric_id)
    except StationNotFoundError as exc:
        raise ApiError(404, "Station not found", code="NOT_FOUND") from exc

    try:
        url = build_directions_url(
            record.lat,
            record.long,
            travel_mode=travel_mode,
            avoid_highways=avoid_highways,
            avoid_tolls=avoid_tolls,
        )
    except NavigationError as exc:
        raise ApiError(
            400, "Invalid navigation parameters", code="INVALID_PARAMETERS", details="; ".join(exc.errors)
        ) from exc

    return {
        "station_id": numeric_id,
        "url": url,
        "fallbacks": fallback_navigation_options(record.lat, record.long),
    }

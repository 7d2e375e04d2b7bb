"""System endpoints: health, persisted logs and sample data."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db_session
from ..models import SystemLog
from ..services.seed_data import sample_station_rows
from ..services.station_repository import StationRepository
from .dependencies import require_api_token
from .errors import ApiError

router = APIRouter()
logger = logging.getLogger("system")


@router.get("/health")
async def system_health(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
    """Check that the station table is reachable."""
    try:
        station_count = await StationRepository(db).count()
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        raise ApiError(500, "Database connection failed", code="DB_UNAVAILABLE", details=str(exc)) from exc

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": {"connected": True, "stations": station_count},
    }


@router.get("/logs", dependencies=[Depends(require_api_token)])
async def recent_logs(
    limit: int = Query(50, ge=1, le=500),
    level: Optional[str] = Query(default=None, description="Filter by level (e.g. WARNING)."),
    service: Optional[str] = Query(default=None, description="Filter by service name."),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    stmt = select(SystemLog).order_by(desc(SystemLog.created_at), desc(SystemLog.id))
    if level:
        stmt = stmt.where(SystemLog.level == level.upper())
    if service:
        stmt = stmt.where(SystemLog.service == service)

    result = await db.execute(stmt.limit(limit))
    items = [record.to_dict() for record in result.scalars()]
    return {"items": items, "count": len(items)}


@router.post("/seed", dependencies=[Depends(require_api_token)])
async def seed_stations(db: AsyncSession = Depends(get_db_session)) -> Dict[str, Any]:
    """Insert the sample stations when the table is empty."""
    try:
        inserted = await StationRepository(db).seed_if_empty(sample_station_rows())
        await db.commit()
    except SQLAlchemyError as exc:
        logger.exception("Seeding stations failed")
        raise ApiError(500, "Failed to insert sample data", code="SEED_FAILED", details=str(exc)) from exc

    if inserted:
        logger.info("Seeded %d sample stations", inserted)
    return {"success": True, "inserted": inserted}

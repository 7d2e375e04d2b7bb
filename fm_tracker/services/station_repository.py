"""Service helpers for reading and patching station records."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.station import StationRecord
from .station_codec import INSPECTED_LABEL, NOT_INSPECTED_LABEL
from .station_types import StationNotFoundError

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = ("on_air", "inspection_68", "details")


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class StationRepository:
    """Persistence boundary over the ``fm_station`` table."""

    def __init__(self, db: AsyncSession, today: Callable[[], date] = _utc_today):
        self._db = db
        self._today = today

    async def list_stations(self) -> List[StationRecord]:
        """Return every station ordered by name."""
        result = await self._db.execute(
            select(StationRecord).order_by(StationRecord.name, StationRecord.id_fm)
        )
        return list(result.scalars().all())

    async def get_station(self, station_id: int) -> StationRecord:
        """
        Fetch a station by id.

        Raises:
            StationNotFoundError: If no station has that id.
        """
        station = await self._db.get(StationRecord, station_id)
        if station is None:
            raise StationNotFoundError(f"Station {station_id} not found")
        return station

    async def update_station(self, station_id: int, columns: Mapping[str, Any]) -> StationRecord:
        """
        Apply only the supplied columns and return the canonical record.

        Setting ``inspection_68`` to inspected stamps today's date into
        ``date_inspected``; setting it back to not inspected clears the date.
        Other outcomes leave the date untouched.

        Raises:
            ValueError: If no updatable column is supplied.
            StationNotFoundError: If no station has that id.
        """
        updates: Dict[str, Any] = {
            key: value for key, value in columns.items() if key in UPDATABLE_COLUMNS
        }
        if not updates:
            raise ValueError("No valid fields to update")

        if "inspection_68" in updates:
            if updates["inspection_68"] == INSPECTED_LABEL:
                updates["date_inspected"] = self._today()
            elif updates["inspection_68"] == NOT_INSPECTED_LABEL:
                updates["date_inspected"] = None

        station = await self.get_station(station_id)
        for key, value in updates.items():
            setattr(station, key, value)

        await self._db.flush()
        await self._db.refresh(station)
        logger.info(
            "Station updated",
            extra={"station_id": station_id, "fields": sorted(updates)},
        )
        return station

    async def recently_changed(self, since_seconds: int) -> List[StationRecord]:
        """Stations whose record changed within the last ``since_seconds``."""
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=since_seconds)
        result = await self._db.execute(
            select(StationRecord)
            .where(StationRecord.updated_at.is_not(None))
            .where(StationRecord.updated_at >= cutoff)
            .order_by(StationRecord.updated_at)
        )
        return list(result.scalars().all())

    async def distinct_values(self, column_name: str) -> List[Any]:
        """Sorted distinct non-empty values of one column, for filter options."""
        column = getattr(StationRecord, column_name)
        result = await self._db.execute(
            select(column).where(column.is_not(None)).distinct().order_by(column)
        )
        return [value for value in result.scalars().all() if value != ""]

    async def count(self) -> int:
        result = await self._db.execute(select(func.count()).select_from(StationRecord))
        return int(result.scalar_one())

    async def add_stations(self, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert seed rows; returns the number inserted."""
        inserted = 0
        for row in rows:
            self._db.add(StationRecord(**row))
            inserted += 1
        await self._db.flush()
        return inserted

    async def seed_if_empty(self, rows: Iterable[Mapping[str, Any]]) -> int:
        if await self.count() > 0:
            return 0
        return await self.add_stations(rows)


def record_rows(records: Iterable[StationRecord]) -> List[Dict[str, Any]]:
    return [record.to_row() for record in records]


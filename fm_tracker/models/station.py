"""Station model for licensed FM transmitters."""

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Date, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class StationRecord(Base, TimestampMixin):
    """Canonical copy of one FM station.

    Column names follow the storage naming convention (``on_air``,
    ``inspection_68``, ...). Translation to client-facing names happens in
    :mod:`fm_tracker.services.station_codec`.
    """

    __tablename__ = "fm_station"

    id_fm: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    freq: Mapped[float] = mapped_column(Float, nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    long: Mapped[float] = mapped_column(Float, nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    province: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permit: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    inspection_67: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    # Stored in its boundary encoding ("ตรวจแล้ว", "ยังไม่ตรวจ" or free text)
    inspection_68: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    date_inspected: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    on_air: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    unwanted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submit_a_request: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_row(self) -> Dict[str, Any]:
        """Serialize the record using storage column names."""
        return {
            "id_fm": self.id_fm,
            "name": self.name,
            "freq": self.freq,
            "lat": self.lat,
            "long": self.long,
            "district": self.district,
            "province": self.province,
            "type": self.type,
            "description": self.description,
            "permit": self.permit,
            "inspection_67": self.inspection_67,
            "inspection_68": self.inspection_68,
            "date_inspected": self.date_inspected.isoformat() if self.date_inspected else None,
            "on_air": self.on_air,
            "unwanted": self.unwanted,
            "submit_a_request": self.submit_a_request,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<StationRecord(id={self.id_fm}, name={self.name}, freq={self.freq})>"

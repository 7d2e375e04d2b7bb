"""Domain types shared by the filter pipeline, grouping and update flow."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

StationId = Union[int, str]

MAIN_STATION_TYPE = "สถานีหลัก"

# Annotations a user can attach to a station; at most one is active.
DETAIL_TAGS = ("#deviation", "#intermod")


class StationNotFoundError(LookupError):
    """Raised when a requested station id does not exist."""


class InspectionState(str, Enum):
    INSPECTED = "inspected"
    NOT_INSPECTED = "not_inspected"
    OTHER = "other"


@dataclass(frozen=True)
class InspectionStatus:
    """Canonical inspection outcome.

    ``label`` only carries meaning for :attr:`InspectionState.OTHER`, where it
    holds the free-text result reported by the inspector.
    """

    state: InspectionState
    label: Optional[str] = None

    @classmethod
    def inspected(cls) -> "InspectionStatus":
        return cls(InspectionState.INSPECTED)

    @classmethod
    def not_inspected(cls) -> "InspectionStatus":
        return cls(InspectionState.NOT_INSPECTED)

    @classmethod
    def other(cls, label: str) -> "InspectionStatus":
        return cls(InspectionState.OTHER, label)

    @property
    def is_inspected(self) -> bool:
        return self.state is InspectionState.INSPECTED

    def toggled(self) -> "InspectionStatus":
        """Inspected flips to not inspected; anything else becomes inspected."""
        if self.is_inspected:
            return InspectionStatus.not_inspected()
        return InspectionStatus.inspected()

    def __str__(self) -> str:
        if self.state is InspectionState.OTHER:
            return self.label or ""
        return self.state.value


class SubmitRequest(str, Enum):
    UNDECIDED = "undecided"
    SUBMITTED = "submitted"
    NOT_SUBMITTED = "not_submitted"


@dataclass(frozen=True)
class Station:
    """Working-copy representation of one FM transmitter."""

    id: StationId
    name: str
    frequency: float
    latitude: float
    longitude: float
    city: str
    state: str
    genre: str
    description: Optional[str] = None
    permit: Optional[str] = None
    inspection_67: Optional[str] = None
    inspection: InspectionStatus = InspectionStatus(InspectionState.NOT_INSPECTED)
    date_inspected: Optional[date] = None
    on_air: bool = True
    details: Optional[str] = None
    unwanted: bool = False
    submit_request: SubmitRequest = SubmitRequest.UNDECIDED
    updated_at: Optional[datetime] = None

    @property
    def is_main_station(self) -> bool:
        return self.genre == MAIN_STATION_TYPE

    def with_changes(self, **changes) -> "Station":
        return replace(self, **changes)


STATION_FIELDS = frozenset(f.name for f in fields(Station))


@dataclass(frozen=True)
class UserLocation:
    """Device-reported position; never persisted."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None


@dataclass(frozen=True)
class FilterState:
    """Filter configuration. ``None`` (or an empty string) means unset."""

    on_air: Optional[bool] = None
    city: Optional[str] = None
    province: Optional[str] = None
    inspection_status: Optional[InspectionStatus] = None
    submit_request: Optional[SubmitRequest] = None
    search: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("city", "province", "search"):
            if getattr(self, name) == "":
                object.__setattr__(self, name, None)

    @property
    def active_count(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)

    @property
    def is_empty(self) -> bool:
        return self.active_count == 0

    def with_changes(self, **changes) -> "FilterState":
        return replace(self, **changes)

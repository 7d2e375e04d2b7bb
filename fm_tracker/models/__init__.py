"""Database models for the FM station tracker."""

from .base import Base
from .station import StationRecord
from .system_log import SystemLog

__all__ = [
    "Base",
    "StationRecord",
    "SystemLog",
]

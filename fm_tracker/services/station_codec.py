"""Translation between boundary encodings and the canonical domain types.

Every encoding quirk of the persistence boundary lives here: snake_case
column names, Thai display strings for the inspection and submission
tri-states, booleans stored as strings. Nothing outside this module should
compare against those raw values.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from .station_types import (
    InspectionState,
    InspectionStatus,
    Station,
    StationId,
    SubmitRequest,
)

INSPECTED_LABEL = "ตรวจแล้ว"
NOT_INSPECTED_LABEL = "ยังไม่ตรวจ"
SUBMITTED_LABEL = "ยื่น"
NOT_SUBMITTED_LABEL = "ไม่ยื่น"


class StationCodec:
    """Encodes and decodes station payloads at the persistence edge."""

    INSPECTION_LABELS = {
        INSPECTED_LABEL: InspectionState.INSPECTED,
        NOT_INSPECTED_LABEL: InspectionState.NOT_INSPECTED,
        "inspected": InspectionState.INSPECTED,
        "not inspected": InspectionState.NOT_INSPECTED,
        "not_inspected": InspectionState.NOT_INSPECTED,
        "true": InspectionState.INSPECTED,
        "false": InspectionState.NOT_INSPECTED,
    }

    SUBMIT_LABELS = {
        SUBMITTED_LABEL: SubmitRequest.SUBMITTED,
        NOT_SUBMITTED_LABEL: SubmitRequest.NOT_SUBMITTED,
        "submitted": SubmitRequest.SUBMITTED,
        "not submitted": SubmitRequest.NOT_SUBMITTED,
        "not_submitted": SubmitRequest.NOT_SUBMITTED,
        "undecided": SubmitRequest.UNDECIDED,
        "true": SubmitRequest.SUBMITTED,
        "false": SubmitRequest.NOT_SUBMITTED,
    }

    SUBMIT_ENCODING = {
        SubmitRequest.SUBMITTED: SUBMITTED_LABEL,
        SubmitRequest.NOT_SUBMITTED: NOT_SUBMITTED_LABEL,
        SubmitRequest.UNDECIDED: None,
    }

    # Station attribute -> client-facing request field
    REQUEST_FIELDS = {
        "on_air": "onAir",
        "inspection": "inspection68",
        "details": "details",
    }

    # Client-facing request field -> storage column
    COLUMN_FIELDS = {
        "onAir": "on_air",
        "inspection68": "inspection_68",
        "details": "details",
    }

    # ------------------------------------------------------------------
    # Tri-state helpers
    # ------------------------------------------------------------------
    def decode_inspection(self, value: Any) -> InspectionStatus:
        if value is None:
            return InspectionStatus.not_inspected()
        if isinstance(value, bool):
            return InspectionStatus.inspected() if value else InspectionStatus.not_inspected()
        if isinstance(value, InspectionStatus):
            return value

        text = str(value).strip()
        if not text:
            return InspectionStatus.not_inspected()
        state = self.INSPECTION_LABELS.get(text) or self.INSPECTION_LABELS.get(text.lower())
        if state is not None:
            return InspectionStatus(state)
        return InspectionStatus.other(text)

    def encode_inspection(self, status: InspectionStatus) -> str:
        if status.state is InspectionState.INSPECTED:
            return INSPECTED_LABEL
        if status.state is InspectionState.NOT_INSPECTED:
            return NOT_INSPECTED_LABEL
        return status.label or ""

    def decode_submit_request(self, value: Any) -> SubmitRequest:
        if value is None:
            return SubmitRequest.UNDECIDED
        if isinstance(value, SubmitRequest):
            return value
        if isinstance(value, bool):
            return SubmitRequest.SUBMITTED if value else SubmitRequest.NOT_SUBMITTED

        text = str(value).strip()
        if not text:
            return SubmitRequest.UNDECIDED
        return (
            self.SUBMIT_LABELS.get(text)
            or self.SUBMIT_LABELS.get(text.lower())
            or SubmitRequest.UNDECIDED
        )

    def encode_submit_request(self, value: SubmitRequest) -> Optional[str]:
        return self.SUBMIT_ENCODING[value]

    def decode_flag(self, value: Any) -> bool:
        return value is True or (isinstance(value, str) and value.strip().lower() == "true")

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    def from_row(self, row: Mapping[str, Any]) -> Station:
        """Build a :class:`Station` from a storage row (snake_case columns)."""
        genre = (row.get("type") or "").strip()
        city = row.get("district") or ""
        province = row.get("province") or ""
        description = row.get("description") or f"{genre} radio station in {city}, {province}"

        return Station(
            id=row["id_fm"],
            name=row.get("name") or "",
            frequency=float(row.get("freq") or 0.0),
            latitude=float(row["lat"]),
            longitude=float(row["long"]),
            city=city,
            state=province,
            genre=genre,
            description=description,
            permit=row.get("permit"),
            inspection_67=row.get("inspection_67"),
            inspection=self.decode_inspection(row.get("inspection_68")),
            date_inspected=_parse_date(row.get("date_inspected")),
            on_air=bool(row.get("on_air")),
            details=row.get("details") or None,
            unwanted=self.decode_flag(row.get("unwanted")),
            submit_request=self.decode_submit_request(row.get("submit_a_request")),
            updated_at=_parse_datetime(row.get("updated_at")),
        )

    def canonical_fields(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the server-owned fields used to reconcile a working copy."""
        return {
            "on_air": bool(row.get("on_air")),
            "inspection": self.decode_inspection(row.get("inspection_68")),
            "date_inspected": _parse_date(row.get("date_inspected")),
            "details": row.get("details") or None,
            "unwanted": self.decode_flag(row.get("unwanted")),
            "submit_request": self.decode_submit_request(row.get("submit_a_request")),
        }

    # ------------------------------------------------------------------
    # Patch requests
    # ------------------------------------------------------------------
    def to_request(self, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Translate station attribute changes into a PATCH request body."""
        payload: Dict[str, Any] = {}
        for attribute, value in changes.items():
            field = self.REQUEST_FIELDS.get(attribute)
            if field is None:
                raise ValueError(f"Field cannot be updated remotely: {attribute}")
            if attribute == "inspection":
                value = self.encode_inspection(value)
            elif attribute == "details":
                value = value or ""
            payload[field] = value
        return payload

    def request_to_columns(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Translate a PATCH request body into storage columns.

        Inspection values are normalised to their canonical storage
        encoding, so a boolean sent by an older client lands as the same
        string a current client would send.
        """
        columns: Dict[str, Any] = {}
        for field, column in self.COLUMN_FIELDS.items():
            if field not in payload:
                continue
            value = payload[field]
            # An explicit null clears details; it is ignored elsewhere.
            if value is None and column != "details":
                continue
            if column == "inspection_68":
                value = self.encode_inspection(self.decode_inspection(value))
            elif column == "details":
                value = value or None
            columns[column] = value
        return columns

    # ------------------------------------------------------------------
    # Recently changed feed
    # ------------------------------------------------------------------
    def to_recent_entry(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "id": row["id_fm"],
            "onAir": row.get("on_air"),
            "inspection68": row.get("inspection_68"),
            "unwanted": self.decode_flag(row.get("unwanted")),
            "submitRequest": row.get("submit_a_request"),
            "dateInspected": row.get("date_inspected"),
            "details": row.get("details"),
        }

    def from_recent_entry(self, entry: Mapping[str, Any]) -> Dict[str, Any]:
        """Decode one recently-changed entry into station attribute changes."""
        changes: Dict[str, Any] = {"id": entry["id"]}
        if "onAir" in entry and entry["onAir"] is not None:
            changes["on_air"] = bool(entry["onAir"])
        if "inspection68" in entry:
            changes["inspection"] = self.decode_inspection(entry["inspection68"])
        if "unwanted" in entry:
            changes["unwanted"] = self.decode_flag(entry["unwanted"])
        if "submitRequest" in entry:
            changes["submit_request"] = self.decode_submit_request(entry["submitRequest"])
        if "dateInspected" in entry:
            changes["date_inspected"] = _parse_date(entry["dateInspected"])
        if "details" in entry:
            changes["details"] = entry["details"] or None
        return changes


def parse_station_id(raw: StationId) -> int:
    """Validate a station id coming from a URL or a working copy."""
    if isinstance(raw, bool):
        raise ValueError(f"Invalid station ID: {raw!r}")
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not text.lstrip("-").isdigit():
        raise ValueError(f"Invalid station ID: {raw!r}")
    return int(text)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


codec = StationCodec()

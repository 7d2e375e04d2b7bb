"""Sample stations for local development and demos."""

from typing import Any, Dict, List

from .station_codec import (
    INSPECTED_LABEL,
    NOT_INSPECTED_LABEL,
    NOT_SUBMITTED_LABEL,
    SUBMITTED_LABEL,
)
from .station_types import MAIN_STATION_TYPE


def _station(
    id_fm: int,
    name: str,
    freq: float,
    lat: float,
    long: float,
    district: str,
    province: str,
    type: str = "Commercial",
    inspection_68: str = INSPECTED_LABEL,
    on_air: bool = True,
    unwanted: bool = False,
    submit_a_request: Any = None,
    **extra: Any,
) -> Dict[str, Any]:
    row = {
        "id_fm": id_fm,
        "name": name,
        "freq": freq,
        "lat": lat,
        "long": long,
        "district": district,
        "province": province,
        "type": type,
        "permit": f"PERMIT{id_fm:03d}",
        "inspection_67": "Passed",
        "inspection_68": inspection_68,
        "on_air": on_air,
        "unwanted": unwanted,
        "submit_a_request": submit_a_request,
    }
    row.update(extra)
    return row


SAMPLE_STATIONS: List[Dict[str, Any]] = [
    _station(1, "Radio Thailand", 92.5, 13.7563, 100.5018, "Dusit", "Bangkok", type=MAIN_STATION_TYPE),
    # Shares a mast with Radio Thailand
    _station(2, "Cool Fahrenheit", 93.0, 13.7563, 100.5018, "Dusit", "Bangkok"),
    _station(3, "Green Wave", 106.5, 13.7658, 100.5700, "Huai Khwang", "Bangkok", inspection_68="Pending"),
    _station(
        4, "Vintage FM", 95.5, 13.7878, 100.6058, "Wang Thonglang", "Bangkok",
        type="Community", submit_a_request=SUBMITTED_LABEL,
    ),
    _station(5, "EFM Radio", 104.5, 13.8198, 100.6098, "Lat Phrao", "Bangkok", details="#intermod"),
    _station(6, "Kiss FM", 91.5, 13.7460, 100.5350, "Pathum Wan", "Bangkok"),
    _station(7, "JS100", 100.5, 13.7240, 100.5260, "Bang Rak", "Bangkok", inspection_68=NOT_INSPECTED_LABEL),
    _station(8, "Chill FM", 89.0, 13.7200, 100.5310, "Sathon", "Bangkok"),
    _station(
        9, "Hitz 955", 95.0, 13.7590, 100.5350, "Phaya Thai", "Bangkok",
        inspection_68=NOT_INSPECTED_LABEL, on_air=False, unwanted=True,
        submit_a_request=NOT_SUBMITTED_LABEL,
    ),
    _station(
        10, "Fat Radio", 104.5, 13.7550, 100.5300, "Ratchathewi", "Bangkok",
        details="#deviation",
    ),
    _station(
        11, "Chiang Mai Public Radio", 100.75, 18.7883, 98.9853, "Mueang Chiang Mai", "Chiang Mai",
        type=MAIN_STATION_TYPE,
    ),
    _station(
        12, "Nimman FM", 97.25, 18.7960, 98.9680, "Mueang Chiang Mai", "Chiang Mai",
        type="Community", inspection_68=NOT_INSPECTED_LABEL,
    ),
    _station(
        13, "Andaman Wave", 102.0, 7.8804, 98.3923, "Mueang Phuket", "Phuket",
        inspection_68=NOT_INSPECTED_LABEL, submit_a_request=NOT_SUBMITTED_LABEL,
    ),
    _station(14, "Patong Beach Radio", 88.5, 7.8961, 98.2970, "Kathu", "Phuket", on_air=False),
]


def sample_station_rows() -> List[Dict[str, Any]]:
    return [dict(row) for row in SAMPLE_STATIONS]

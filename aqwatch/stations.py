"""Station records: decoding the CNEMC live feed and spotting missing readings.

The publish endpoint is loosely specified. Depending on the day it returns
- a bare JSON array of station objects,
- an object wrapping that array under Data/data/Rows/rows/Table/... , or
- an object whose only array member sits under some other key.
All three decode to the same list of StationRecord.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .errors import DecodeError

# Station names exempt from alerting (exact match after trimming)
IGNORE_POSITION_NAMES: FrozenSet[str] = frozenset({"帽峰山", "帽峰山森林公园"})

# Wrapper keys tried in this order before scanning every member
WRAPPER_KEYS = ("Data", "data", "Rows", "rows", "Table", "table", "records", "Records")

# upstream key -> StationRecord attribute
FIELD_MAP = {
    "PositionName": "position_name",
    "Quality": "quality",
    "AQI": "aqi",
    "O3": "o3",
    "NO2": "no2",
    "PM10": "pm10",
    "PM2_5": "pm2_5",
    "SO2": "so2",
    "CO": "co",
    "Latitude": "latitude",
    "Longitude": "longitude",
    "TimePoint": "time_point",
    "StationCode": "station_code",
    "PrimaryPollutant": "primary_pollutant",
}

# Canonical factor order used in alerts: (label, attribute)
POLLUTANT_FACTORS: Tuple[Tuple[str, str], ...] = (
    ("AQI", "aqi"),
    ("PM2.5", "pm2_5"),
    ("PM10", "pm10"),
    ("O3", "o3"),
    ("NO2", "no2"),
    ("SO2", "so2"),
    ("CO", "co"),
)

EM_DASH = "—"
MISSING_TOKENS = frozenset({"-", EM_DASH, "na", "n/a", "null"})
MISSING_SUBSTRINGS = (EM_DASH, "缺失")


@dataclass(frozen=True)
class StationRecord:
    """One station's reading snapshot. Every field is raw upstream text."""

    position_name: str = ""
    quality: str = ""
    aqi: str = ""
    o3: str = ""
    no2: str = ""
    pm10: str = ""
    pm2_5: str = ""
    so2: str = ""
    co: str = ""
    latitude: str = ""
    longitude: str = ""
    time_point: str = ""
    station_code: str = ""
    primary_pollutant: str = ""

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "StationRecord":
        """Builds a record from one upstream object.

        Absent keys and nulls become "", numbers keep their textual form.
        Raises ValueError on a non-scalar field value.
        """
        values = {}
        for key, attr in FIELD_MAP.items():
            values[attr] = _field_text(key, raw.get(key))
        return cls(**values)


@dataclass(frozen=True)
class ProblemStation:
    station: StationRecord
    missing: Tuple[str, ...]


def _field_text(key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # bool is an int subclass; upstream never sends booleans for readings
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValueError(f"field {key!r} has non-scalar value {type(value).__name__}")


# ------------- decoding -------------
def _as_station_list(value: Any) -> Optional[List[StationRecord]]:
    """Returns records if value is an array of station objects, else None."""
    if not isinstance(value, list):
        return None
    out: List[StationRecord] = []
    for item in value:
        if not isinstance(item, dict):
            return None
        try:
            out.append(StationRecord.from_mapping(item))
        except ValueError:
            return None
    return out


def decode_stations(payload: Union[bytes, str]) -> List[StationRecord]:
    """Decodes an upstream body into station records.

    Tries a direct array, then the known wrapper keys in priority order,
    then the first member (document order) that decodes as a station array.

    Raises:
        DecodeError: body is not JSON or no interpretation fits
    """
    try:
        doc = json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"response is not valid JSON: {e}") from e

    stations = _as_station_list(doc)
    if stations is not None:
        return stations

    if isinstance(doc, dict):
        for key in WRAPPER_KEYS:
            if key in doc:
                stations = _as_station_list(doc[key])
                if stations is not None:
                    return stations
        for value in doc.values():
            stations = _as_station_list(value)
            if stations is not None:
                return stations

    raise DecodeError("cannot decode response as expected JSON array")


# ------------- missing-value classification -------------
def is_missing_value(value: str) -> bool:
    """Checks whether a raw field is a "no data" placeholder.

    Substring matching on the em-dash / 缺失 markers can over-match text that
    merely embeds them.
    """
    s = value.strip()
    if not s:
        return True
    if s.lower() in MISSING_TOKENS:
        return True
    return any(marker in value for marker in MISSING_SUBSTRINGS)


def missing_factors(station: StationRecord) -> Tuple[str, ...]:
    """Returns labels of missing factors in canonical order (AQI first)."""
    return tuple(
        label for label, attr in POLLUTANT_FACTORS
        if is_missing_value(getattr(station, attr))
    )


def has_missing_data(station: StationRecord) -> bool:
    return bool(missing_factors(station))


def is_ignored_station(station: StationRecord, ignore: Iterable[str] = IGNORE_POSITION_NAMES) -> bool:
    return station.position_name.strip() in ignore


def select_problem_stations(
    stations: Iterable[StationRecord],
    ignore: FrozenSet[str] = IGNORE_POSITION_NAMES,
) -> List[ProblemStation]:
    """Filters stations down to non-ignored ones with at least one missing factor.

    Upstream order is preserved.
    """
    problems: List[ProblemStation] = []
    for st in stations:
        if is_ignored_station(st, ignore):
            continue
        missing = missing_factors(st)
        if missing:
            problems.append(ProblemStation(station=st, missing=missing))
    return problems

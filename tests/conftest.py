"""Shared fixtures for watcher tests."""

import json
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest


def make_station(name: str = "广雅中学", **overrides: Any) -> Dict[str, Any]:
    """Returns one upstream station object with every reading present."""
    row = {
        "PositionName": name,
        "Quality": "良",
        "AQI": "56",
        "O3": "88",
        "NO2": "35",
        "PM10": "61",
        "PM2_5": "32",
        "SO2": "7",
        "CO": "0.6",
        "Latitude": "23.1422",
        "Longitude": "113.2347",
        "TimePoint": "2024-03-01T08:00:00",
        "StationCode": "1345A",
        "PrimaryPollutant": "PM10",
    }
    row.update(overrides)
    return row


def make_response(status_code: int = 200, body: Any = None, text: str = None) -> MagicMock:
    """Builds a requests.Response stand-in with content/text/json wired consistently."""
    if text is None:
        text = json.dumps(body, ensure_ascii=False) if body is not None else ""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.content = text.encode("utf-8")
    if body is not None:
        resp.json.return_value = body
    else:
        resp.json.side_effect = ValueError("no json")
    return resp


@pytest.fixture
def station_rows() -> List[Dict[str, Any]]:
    """Three stations: one complete, one missing AQI/PM2.5, one ignored and missing CO."""
    return [
        make_station("广雅中学"),
        make_station("测试站", AQI="—", PM2_5=""),
        make_station("帽峰山森林公园", CO="-"),
    ]


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def no_sleep(monkeypatch) -> List[float]:
    """Replaces time.sleep and records requested durations."""
    import time

    calls: List[float] = []
    monkeypatch.setattr(time, "sleep", lambda secs: calls.append(secs))
    return calls

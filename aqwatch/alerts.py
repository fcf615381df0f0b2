"""Alert composition for WeChat Work and DingTalk markdown messages."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from .settings import CITY_NAME
from .stations import ProblemStation

# Tried in order; first successful parse wins
TIME_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S%z",      # RFC3339 with offset or Z
    "%Y-%m-%dT%H:%M:%S.%f%z",   # RFC3339 with fractional seconds
    "%Y-%m-%dT%H:%M:%S",        # feed sample, no zone
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d",
)
LABEL_FORMAT = "%Y-%m-%d %H:%M:%S"
UNKNOWN = "Unknown"

FACTOR_SEPARATOR = "、"
NO_FACTORS = "无"

INTRO_LINE = "以下站点存在数据缺失问题，请及时关注：\n\n"
ADVISORY_LINE = "> 请相关技术人员尽快检查设备状态和数据传输链路。（缺失数据基于总站发布平台）"


@dataclass(frozen=True)
class AlertMessage:
    title: str
    text: str


def parse_time_flexible(ts: str) -> datetime:
    ts = ts.strip()
    if not ts:
        raise ValueError("empty time")
    for layout in TIME_LAYOUTS:
        try:
            return datetime.strptime(ts, layout)
        except ValueError:
            continue
    raise ValueError(f"unrecognized time format: {ts!r}")


def format_time_label(problems: Sequence[ProblemStation]) -> str:
    """Label for the alert heading, derived from the first problem station.

    Falls back to the raw TimePoint text when no layout matches.
    """
    if not problems:
        return UNKNOWN
    raw = problems[0].station.time_point
    if not raw.strip():
        return UNKNOWN
    try:
        return parse_time_flexible(raw).strftime(LABEL_FORMAT)
    except ValueError:
        return raw


def format_missing_factors(factors: Sequence[str]) -> str:
    if not factors:
        return NO_FACTORS
    return FACTOR_SEPARATOR.join(factors)


def alert_title(label: str, city: str = CITY_NAME) -> str:
    return f"{city}空气质量监测站点数据异常警报({label})"


def _station_name(problem: ProblemStation) -> str:
    return problem.station.position_name.strip() or UNKNOWN


def compose_wechat_work(problems: Sequence[ProblemStation], city: str = CITY_NAME) -> Optional[AlertMessage]:
    """WeChat Work markdown: one bold name plus a warning-coloured factor line per station."""
    if not problems:
        return None
    title = alert_title(format_time_label(problems), city)
    parts: List[str] = [f"## 🚨 {title}\n", INTRO_LINE]
    for p in problems:
        parts.append(
            f"**{_station_name(p)}**\n"
            f"<font color=\"warning\">缺失因子: {format_missing_factors(p.missing)}</font>\n\n"
        )
    parts.append(ADVISORY_LINE)
    return AlertMessage(title=title, text="".join(parts))


def compose_dingtalk(problems: Sequence[ProblemStation], city: str = CITY_NAME) -> Optional[AlertMessage]:
    """DingTalk markdown: time on its own sub-heading, stations as nested bullets."""
    if not problems:
        return None
    label = format_time_label(problems)
    parts: List[str] = [
        f"### 🚨 {city}空气质量监测站点数据异常警报\n",
        f"#### {label}\n",
        INTRO_LINE,
    ]
    for p in problems:
        parts.append(
            f"- **{_station_name(p)}**\n"
            f"  - 缺失因子: {format_missing_factors(p.missing)}\n\n"
        )
    parts.append(ADVISORY_LINE)
    return AlertMessage(title=alert_title(label, city), text="".join(parts))

"""Unit tests for alert composition."""

from datetime import datetime

import pytest

from aqwatch.alerts import (
    ADVISORY_LINE,
    alert_title,
    compose_dingtalk,
    compose_wechat_work,
    format_missing_factors,
    format_time_label,
    parse_time_flexible,
)
from aqwatch.stations import ProblemStation, StationRecord


def problem(name="测试站", missing=("AQI", "PM2.5"), time_point="2024-03-01T08:00:00"):
    return ProblemStation(StationRecord(position_name=name, time_point=time_point), tuple(missing))


class TestTimeLabel:
    """Tests for flexible timestamp parsing and the heading label."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-03-01T08:00:00", "2024-03-01 08:00:00"),
            ("2024-03-01T08:00:00+08:00", "2024-03-01 08:00:00"),
            ("2024-03-01T08:00:00Z", "2024-03-01 08:00:00"),
            ("2024-03-01T08:00:00.250+08:00", "2024-03-01 08:00:00"),
            ("2024-03-01 08:00:00", "2024-03-01 08:00:00"),
            ("2024/03/01 08:00:00", "2024-03-01 08:00:00"),
            ("2024-03-01", "2024-03-01 00:00:00"),
        ],
    )
    def test_known_layouts(self, raw, expected):
        assert format_time_label([problem(time_point=raw)]) == expected

    def test_unparseable_kept_verbatim(self):
        assert format_time_label([problem(time_point="garbage")]) == "garbage"

    def test_empty_inputs_are_unknown(self):
        assert format_time_label([]) == "Unknown"
        assert format_time_label([problem(time_point="  ")]) == "Unknown"

    def test_first_station_wins(self):
        problems = [problem(time_point="2024-03-01T08:00:00"), problem(time_point="2024-03-01T09:00:00")]
        assert format_time_label(problems) == "2024-03-01 08:00:00"

    def test_parse_time_flexible_raises(self):
        with pytest.raises(ValueError):
            parse_time_flexible("")
        assert parse_time_flexible(" 2024-03-01 ") == datetime(2024, 3, 1)


class TestFormatting:
    def test_factors_joined_with_full_width_separator(self):
        assert format_missing_factors(["AQI", "PM2.5"]) == "AQI、PM2.5"

    def test_no_factors(self):
        assert format_missing_factors([]) == "无"

    def test_title(self):
        assert alert_title("2024-03-01 08:00:00") == "广州市空气质量监测站点数据异常警报(2024-03-01 08:00:00)"


class TestComposers:
    """Tests for the two channel renderers."""

    def test_wechat_contains_station_and_factors(self):
        msg = compose_wechat_work([problem()])
        assert "测试站" in msg.text
        assert "缺失因子: AQI、PM2.5" in msg.text
        assert msg.text.startswith("## 🚨 广州市空气质量监测站点数据异常警报(2024-03-01 08:00:00)\n")
        assert '<font color="warning">缺失因子: AQI、PM2.5</font>' in msg.text
        assert msg.text.endswith(ADVISORY_LINE)

    def test_dingtalk_contains_station_and_factors(self):
        msg = compose_dingtalk([problem()])
        assert "- **测试站**\n" in msg.text
        assert "  - 缺失因子: AQI、PM2.5\n" in msg.text
        assert "#### 2024-03-01 08:00:00\n" in msg.text
        assert msg.title == "广州市空气质量监测站点数据异常警报(2024-03-01 08:00:00)"
        assert msg.text.endswith(ADVISORY_LINE)

    def test_both_channels_render_every_station_in_order(self):
        problems = [problem("甲站", ("CO",)), problem("乙站", ("O3", "NO2"))]
        for compose in (compose_wechat_work, compose_dingtalk):
            text = compose(problems).text
            assert text.index("甲站") < text.index("乙站")
            assert "缺失因子: O3、NO2" in text

    def test_empty_problem_list_composes_nothing(self):
        assert compose_wechat_work([]) is None
        assert compose_dingtalk([]) is None

    def test_blank_station_name_rendered_as_unknown(self):
        msg = compose_wechat_work([problem(name=" ")])
        assert "**Unknown**" in msg.text

    def test_empty_factor_list_uses_none_token(self):
        msg = compose_dingtalk([problem(missing=())])
        assert "缺失因子: 无" in msg.text

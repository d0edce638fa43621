from datetime import datetime

import pytest

from tracker.time_utils import (
    current_month_range,
    end_of_day,
    format_date,
    format_detailed_time,
    format_status_bar_time,
    format_time,
    format_time_of_day,
    safe_time_difference,
    today_range,
)

HOUR = 3_600_000


class TestFormatTime:
    @pytest.mark.parametrize(
        "ms, expected",
        [
            (0, "0s"),
            (59_000, "59s"),
            (61_000, "1m 1s"),
            (HOUR + 5 * 60_000 + 3_000, "1h 5m 3s"),
            (-5_000, "0s"),
        ],
    )
    def test_status_bar(self, ms, expected):
        assert format_status_bar_time(ms) == expected

    def test_detailed(self):
        assert format_detailed_time(HOUR + 60_000) == "1 hour 1 minute"
        assert format_detailed_time(2 * HOUR + 30 * 60_000) == "2 hours 30 minutes"
        assert format_detailed_time(0) == "0 minutes"

    def test_always_show_hours(self):
        assert format_time(5 * 60_000, show_seconds=False, always_show_hours=True) == "0h 5m"


def test_time_of_day_and_date():
    moment = datetime(2024, 3, 14, 9, 5, 7)
    assert format_time_of_day(moment) == "09:05"
    assert format_date(moment) == "2024-03-14"


def test_end_of_day_is_one_ms_before_midnight():
    assert end_of_day(datetime(2024, 3, 14, 9, 0)) == datetime(2024, 3, 14, 23, 59, 59, 999000)


def test_today_range():
    start, end = today_range(datetime(2024, 3, 14, 9, 0))
    assert start == datetime(2024, 3, 14)
    assert end == datetime(2024, 3, 14, 23, 59, 59, 999000)


def test_month_range_over_year_end():
    start, end = current_month_range(datetime(2024, 12, 20))
    assert start == datetime(2024, 12, 1)
    assert end == datetime(2024, 12, 31, 23, 59, 59, 999000)


class TestSafeTimeDifference:
    def test_plain(self):
        assert safe_time_difference(datetime(2024, 1, 1, 0, 0, 5), datetime(2024, 1, 1)) == 5_000

    def test_negative_is_zero(self):
        assert safe_time_difference(datetime(2024, 1, 1), datetime(2024, 1, 1, 0, 0, 5)) == 0

    def test_above_bound_is_zero(self):
        assert safe_time_difference(datetime(2024, 1, 1, 1), datetime(2024, 1, 1), max_minutes=30) == 0

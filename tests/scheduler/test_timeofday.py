"""Tests for pako/scheduler/timeofday.py"""
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from pako.core.errors import TimeFormatError
from pako.scheduler.timeofday import (
    TimeOfDay,
    format_duration,
    next_occurrence,
    parse_duration,
    parse_time_of_day,
    parse_time_of_day_list,
)


class TestParseTimeOfDay:
    @pytest.mark.parametrize(
        "text, hour, minute",
        [("00:00", 0, 0), ("09:05", 9, 5), ("23:59", 23, 59), ("12:30", 12, 30)],
    )
    def test_valid(self, text, hour, minute):
        assert parse_time_of_day(text) == TimeOfDay(hour, minute)

    @pytest.mark.parametrize(
        "text",
        ["9:00", "09:00:00", "0900", "", "ab:cd", "09-00", "24:00", "12:60", "１２:３０", " 9:00"],
    )
    def test_invalid(self, text):
        with pytest.raises(TimeFormatError):
            parse_time_of_day(text)

    def test_error_carries_value(self):
        with pytest.raises(TimeFormatError) as exc:
            parse_time_of_day("25:00")
        assert exc.value.value == "25:00"
        assert "hour" in exc.value.message

    def test_str_is_zero_padded(self):
        assert str(TimeOfDay(7, 5)) == "07:05"

    def test_list_aborts_on_first_bad_entry(self):
        assert parse_time_of_day_list(["09:00", "18:30"]) == [TimeOfDay(9, 0), TimeOfDay(18, 30)]
        with pytest.raises(TimeFormatError) as exc:
            parse_time_of_day_list(["09:00", "99:99", "bad"])
        assert exc.value.value == "99:99"


class TestNextOccurrence:
    def test_later_today(self):
        now = datetime(2024, 3, 10, 8, 0)
        assert next_occurrence(now, TimeOfDay(9, 0)) == datetime(2024, 3, 10, 9, 0)

    def test_earlier_rolls_to_tomorrow(self):
        now = datetime(2024, 3, 10, 10, 0)
        assert next_occurrence(now, TimeOfDay(9, 0)) == datetime(2024, 3, 11, 9, 0)

    def test_exact_match_rolls_to_tomorrow(self):
        now = datetime(2024, 3, 10, 9, 0)
        assert next_occurrence(now, TimeOfDay(9, 0)) == datetime(2024, 3, 11, 9, 0)

    def test_seconds_past_the_minute_roll_over(self):
        now = datetime(2024, 3, 10, 9, 0, 30)
        assert next_occurrence(now, TimeOfDay(9, 0)) == datetime(2024, 3, 11, 9, 0)

    def test_month_boundary(self):
        now = datetime(2024, 2, 29, 23, 30)
        assert next_occurrence(now, TimeOfDay(0, 15)) == datetime(2024, 3, 1, 0, 15)

    def test_always_strictly_after_now(self):
        now = datetime(2024, 1, 1, 0, 0)
        for minutes in range(0, 24 * 60, 37):
            tod = TimeOfDay(minutes // 60, minutes % 60)
            result = next_occurrence(now, tod)
            assert now < result <= now + timedelta(days=1)


class TestDurations:
    @pytest.mark.parametrize(
        "value, seconds",
        [("30s", 30), ("5m", 300), ("1h30m", 5400), ("1.5h", 5400), ("250ms", 0.25), ("90", 90), (45, 45)],
    )
    def test_parse(self, value, seconds):
        assert parse_duration(value) == timedelta(seconds=seconds)

    @pytest.mark.parametrize("value", ["", "5x", "m5", "1h 30m", True])
    def test_parse_invalid(self, value):
        with pytest.raises(TimeFormatError):
            parse_duration(value)

    def test_format(self):
        assert format_duration(timedelta(minutes=5)) == "5m"
        assert format_duration(timedelta(hours=1, minutes=30)) == "1h30m"
        assert format_duration(timedelta(seconds=45)) == "45s"
        assert format_duration(timedelta(0)) == "0s"
